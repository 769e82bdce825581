from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class PreviewRecord(BaseModel):
    """Metadata stored next to a generated preview's HTML."""

    preview_id: str
    template_slug: str
    prospect_name: str
    page_url: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    injected_data: Dict[str, Optional[str]] = Field(default_factory=dict)
    view_count: int = 0
    last_viewed_at: Optional[datetime] = None
    cta_clicked: bool = False
