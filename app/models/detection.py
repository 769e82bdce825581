from typing import Literal, Optional

from pydantic import BaseModel, Field


class Detection(BaseModel):
    """Vertical and template choice returned by the detection model."""

    vertical: str = "other"
    sub_vertical: Optional[str] = None
    template_slug: str
    current_site_quality: int = Field(default=5, ge=1, le=10)
    reasoning: str = ""
    confidence: Literal["high", "medium", "low"] = "low"
