from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class PreviewRequest(BaseModel):
    template_filename: str
    injected_data: Dict[str, Optional[str]] = Field(default_factory=dict)
    prospect_name: str
    color_palette: List[str] = Field(default_factory=list)
    preview_id: Optional[str] = None
    expires_at: Optional[datetime] = None


class TrackEvent(BaseModel):
    preview_id: str
    event: str
    ref: Optional[str] = None
    ts: Optional[int] = None
