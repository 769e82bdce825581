from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel


class GenerateResponse(BaseModel):
    preview_id: str
    preview_url: str
    template_used: str
    vertical: str
    sub_vertical: Optional[str] = None
    confidence: Literal["high", "medium", "low"]
    reasoning: str
    expires_at: datetime
    injected_data: Dict[str, Optional[str]]
    unfilled_tokens: List[str]
