"""Injection data extraction: capture → ``{TOKEN: value}`` bundle for a template."""

import logging
import re
from typing import Dict, Optional

import anthropic

from app.models.capture import Capture
from app.services.llm import LLMResponseError, call_model, parse_json_reply

logger = logging.getLogger(__name__)

EXTRACTION_MAX_TOKENS = 2000
_TOKEN_NAME_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")

DEFAULT_PHONE = "+971 4 000 0000"
DEFAULT_ADDRESS = "Dubai, UAE"
DEFAULT_DOCTOR = "Dr. Specialist"

SYSTEM_PROMPT = """You are a data extraction specialist for a Dubai-based web agency.
Your job is to extract or intelligently infer all template variables from captured website data.
If data is missing, generate a realistic, professional placeholder appropriate for Dubai, UAE.
All content should be professional, accurate and suitable for a UAE healthcare or retail business.
Return ONLY valid JSON, no explanation."""

MEDICAL_SCHEMA = """{{
  "CLINIC_NAME": "exact business name",
  "CLINIC_PHONE": "phone number with UAE format +971...",
  "CLINIC_WHATSAPP": "whatsapp number",
  "CLINIC_EMAIL": "email or placeholder",
  "CLINIC_ADDRESS": "full address",
  "DOCTOR_NAME": "Dr. Full Name or placeholder",
  "DOCTOR_FIRSTNAME": "first name only",
  "DOCTOR_IMAGE": "{hero}",
  "HERO_IMAGE": "{hero}",
  "SPECIALTY": "exact medical specialty",
  "YEARS_EXPERIENCE": "number",
  "PATIENT_COUNT": "realistic number e.g. 5,000+",
  "RATING": "google rating or 4.8",
  "LICENSE_TYPE": "DHA or HAAD",
  "OPENING_HOURS": "realistic UAE clinic hours"
}}"""

BRAND_SCHEMA = """{{
  "BRAND_NAME": "exact business name",
  "BRAND_TAGLINE": "short punchy tagline",
  "BRAND_PHONE": "phone number",
  "BRAND_EMAIL": "email",
  "BRAND_ADDRESS": "address",
  "HERO_IMAGE": "{hero}",
  "HERO_HEADING": "compelling headline for their industry",
  "HERO_SUB": "1-2 sentence subheading",
  "PRIMARY_COLOR": "hex color from their brand palette or best fit",
  "PRODUCT_1": "first product/service name",
  "PRODUCT_2": "second product/service name",
  "PRODUCT_3": "third product/service name"
}}"""

USER_PROMPT = """Extract template injection data from this captured website.

Business: {business_name}
Website: {page_url}
Vertical: {vertical}
Phone found: {phones}
Email found: {emails}
Address: {address}
Hero image URL: {hero}
Logo URL: {logo}
Doctor name (if known): {doctor}
Brand colors: {colors}
Page content: {content}

Return this JSON structure:
{schema}"""


def is_medical(vertical: Optional[str]) -> bool:
    return (vertical or "").lower() == "medical"


def build_user_prompt(capture: Capture, vertical: str, sub_vertical: Optional[str]) -> str:
    hero = capture.hero_image_url or ""
    schema = MEDICAL_SCHEMA if is_medical(vertical) else BRAND_SCHEMA
    content = capture.page_content or " ".join([capture.h1_text, *capture.h2_texts[:5]])
    return USER_PROMPT.format(
        business_name=capture.business_name or capture.page_title,
        page_url=capture.page_url,
        vertical=f"{vertical} ({sub_vertical})" if sub_vertical else vertical,
        phones=", ".join(capture.contact_phones) or "not found",
        emails=", ".join(capture.contact_emails) or "not found",
        address=capture.address or "not found",
        hero=hero,
        logo=capture.logo_url or "",
        doctor=capture.doctor_names[0] if capture.doctor_names else "not found",
        colors=", ".join(capture.color_palette) or "not found",
        content=content.strip(),
        schema=schema.format(hero=hero),
    )


def fallback_injection_data(capture: Capture, prospect_name: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Bundle built only from literal capture data, for both template families."""
    name = prospect_name or capture.business_name or capture.page_title
    phone = capture.contact_phones[0] if capture.contact_phones else DEFAULT_PHONE
    email = capture.contact_emails[0] if capture.contact_emails else None
    address = capture.address or DEFAULT_ADDRESS
    doctor = capture.doctor_names[0] if capture.doctor_names else None
    return {
        "CLINIC_NAME": name,
        "BRAND_NAME": name,
        "CLINIC_PHONE": phone,
        "BRAND_PHONE": phone,
        "CLINIC_WHATSAPP": phone,
        "CLINIC_EMAIL": email,
        "BRAND_EMAIL": email,
        "CLINIC_ADDRESS": address,
        "BRAND_ADDRESS": address,
        "DOCTOR_NAME": doctor or DEFAULT_DOCTOR,
        "DOCTOR_FIRSTNAME": (doctor or "Doctor").split(" ")[-1],
        "HERO_IMAGE": capture.hero_image_url or "",
        "DOCTOR_IMAGE": "",
    }


def _clean_bundle(data: dict) -> Dict[str, Optional[str]]:
    bundle: Dict[str, Optional[str]] = {}
    for key, value in data.items():
        if not isinstance(key, str) or not _TOKEN_NAME_RE.match(key):
            logger.debug("Dropping non-token key %r from extraction reply", key)
            continue
        bundle[key] = None if value is None else str(value)
    return bundle


async def extract_injection_data(
    capture: Capture,
    vertical: str,
    sub_vertical: Optional[str] = None,
    *,
    prospect_name: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    """Ask the model for the template token values; never raises."""
    try:
        raw = await call_model(
            SYSTEM_PROMPT,
            build_user_prompt(capture, vertical, sub_vertical),
            EXTRACTION_MAX_TOKENS,
        )
        bundle = _clean_bundle(parse_json_reply(raw))
    except (anthropic.AnthropicError, LLMResponseError) as exc:
        logger.warning("Injection data extraction failed for %s: %s", capture.page_url, exc)
        return fallback_injection_data(capture, prospect_name)

    if not bundle:
        logger.warning("Extraction reply for %s had no usable tokens", capture.page_url)
        return fallback_injection_data(capture, prospect_name)
    return bundle
