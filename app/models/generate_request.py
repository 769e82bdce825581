from typing import Optional

from pydantic import BaseModel, Field

from app.models.capture import Capture


class GenerateRequest(BaseModel):
    capture: Capture
    prospect_name: Optional[str] = Field(
        default=None,
        description="Name shown in the preview banner. Defaults to the captured business name.",
    )
    vertical: Optional[str] = Field(
        default=None,
        description="Known vertical, used when template detection fails.",
    )
    template_slug: Optional[str] = Field(
        default=None,
        description="Skip template detection and use this template.",
    )
