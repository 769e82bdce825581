from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Heading(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: Literal["h1", "h2"]
    text: str


class Capture(BaseModel):
    """Everything scraped from one page of a prospect's website."""

    page_url: str
    page_title: str = ""
    meta_description: str = ""
    h1_text: str = ""
    h2_texts: List[str] = Field(default_factory=list)
    headings: List[Heading] = Field(default_factory=list)
    logo_url: Optional[str] = None
    hero_image_url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    color_palette: List[str] = Field(default_factory=list)  # most frequent first
    font_families: List[str] = Field(default_factory=list)
    has_booking: bool = False
    has_whatsapp: bool = False
    has_instagram: bool = False
    contact_emails: List[str] = Field(default_factory=list)
    contact_phones: List[str] = Field(default_factory=list)
    doctor_names: List[str] = Field(default_factory=list)
    address: Optional[str] = None
    business_name: Optional[str] = None
    google_maps_url: Optional[str] = None
    page_content: Optional[str] = None  # paragraphs + service headings, for LLM grounding
