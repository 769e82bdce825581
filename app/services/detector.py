"""Vertical / template detection for a captured page.

Given a :class:`~app.models.capture.Capture`, :func:`detect_template` asks the
model to classify the business and pick the redesign template that would most
impress it.  The call is best-effort: any failure (API error, non-JSON reply,
unknown template slug, schema violation) yields :func:`fallback_detection`
instead of an exception.

Confidence levels
-----------------
``"high"`` / ``"medium"``
    Reported by the model.

``"low"``
    Reported by the model, or the deterministic fallback was used.
"""

import logging
from typing import Dict, List, Optional

import anthropic
from pydantic import ValidationError

from app.config import get_settings
from app.models.capture import Capture
from app.models.detection import Detection
from app.services.llm import LLMResponseError, call_model, parse_json_reply
from app.services.templates import list_templates

logger = logging.getLogger(__name__)

# Known template slugs and what they look like
TEMPLATE_LIBRARY: Dict[str, str] = {
    "jewellery-noir": "Jewellery, luxury dark",
    "jewellery-blanc": "Jewellery, luxury light",
    "jewellery-terre": "Jewellery, earthy",
    "perfume-oud": "Perfume, luxury dark",
    "perfume-parisien": "Perfume, editorial",
    "perfume-botanique": "Perfume, natural",
    "apparel-vivace": "Apparel, editorial",
    "apparel-lumiere": "Apparel, luxury",
    "cosmetics-botanica": "Cosmetics, natural",
    "cosmetics-luxe": "Cosmetics, luxury",
    "electronics-studio": "Electronics, minimal",
    "electronics-volt": "Electronics, bold",
    "other-elevate": "Other, professional",
    "other-vivid": "Other, bold",
    "other-clarity": "Other, clean",
    "medical-gp": "Medical, GP / Family Medicine",
    "medical-dental": "Medical, Dental Clinic",
    "medical-derm": "Medical, Dermatology & Aesthetics",
    "medical-cardio": "Medical, Cardiology",
    "medical-paeds": "Medical, Paediatrics",
    "medical-ortho": "Medical, Orthopaedics & Sports Medicine",
    "medical-womens": "Medical, Women's Health / OB-GYN",
    "medical-eye": "Medical, Eye Clinic / Ophthalmology",
}

SYSTEM_PROMPT = """You are an expert web design consultant for a Dubai-based web agency.
You analyse captured website data and choose the best redesign template from our library.

TEMPLATE LIBRARY:
{library}

RULES:
- Choose the template that would most impress THIS specific business
- For medical: always match the exact specialty
- For e-commerce: consider brand aesthetic (existing colors, tone, photography style)
- Only choose a slug listed in the library
- Always return valid JSON, nothing else"""

USER_PROMPT = """Analyse this captured website and choose the best template:

Business Name: {business_name}
Website: {page_url}
Page Title: {page_title}
H1: {h1_text}
Meta Description: {meta_description}
H2s: {h2_texts}
Colors detected: {colors}
Fonts detected: {fonts}
Has booking widget: {has_booking}
Has WhatsApp: {has_whatsapp}

Respond with ONLY this JSON:
{{
  "vertical": "medical|jewellery|perfume|apparel|cosmetics|electronics|other",
  "sub_vertical": "dental|cardiology|dermatology|paediatrics|orthopaedics|obgyn|ophthalmology|gp|null",
  "template_slug": "exact-template-slug-from-library",
  "current_site_quality": 1-10,
  "reasoning": "2-3 sentences explaining your choice",
  "confidence": "high|medium|low"
}}"""


def available_slugs(template_dir: Optional[str] = None) -> List[str]:
    """Slugs of the templates actually present in the template store."""
    return [name[: -len(".html")] for name in list_templates(template_dir)]


def _library_text(slugs: List[str]) -> str:
    return "\n".join(f"- {slug}: {TEMPLATE_LIBRARY.get(slug, slug)}" for slug in slugs)


def fallback_detection(vertical: Optional[str] = None) -> Detection:
    return Detection(
        vertical=vertical or "other",
        sub_vertical=None,
        template_slug=get_settings().fallback_template_slug,
        current_site_quality=5,
        reasoning="Fallback: template detection failed",
        confidence="low",
    )


def build_user_prompt(capture: Capture) -> str:
    return USER_PROMPT.format(
        business_name=capture.business_name or "Unknown",
        page_url=capture.page_url,
        page_title=capture.page_title,
        h1_text=capture.h1_text,
        meta_description=capture.meta_description,
        h2_texts=" | ".join(capture.h2_texts),
        colors=", ".join(capture.color_palette),
        fonts=", ".join(capture.font_families),
        has_booking=capture.has_booking,
        has_whatsapp=capture.has_whatsapp,
    )


async def detect_template(
    capture: Capture,
    *,
    prospect_vertical: Optional[str] = None,
    template_dir: Optional[str] = None,
) -> Detection:
    """Classify *capture* and choose a template slug; never raises."""
    slugs = available_slugs(template_dir) or sorted(TEMPLATE_LIBRARY)
    system = SYSTEM_PROMPT.format(library=_library_text(slugs))

    try:
        raw = await call_model(system, build_user_prompt(capture))
        data = parse_json_reply(raw)
        if data.get("sub_vertical") in ("null", ""):
            data["sub_vertical"] = None
        detection = Detection.model_validate(data)
    except (anthropic.AnthropicError, LLMResponseError, ValidationError) as exc:
        logger.warning("Template detection failed for %s: %s", capture.page_url, exc)
        return fallback_detection(prospect_vertical)

    if detection.template_slug not in slugs:
        logger.warning(
            "Model chose unknown template %r for %s", detection.template_slug, capture.page_url
        )
        return fallback_detection(prospect_vertical or detection.vertical)

    logger.info(
        "Template detected",
        extra={"url": capture.page_url, "template": detection.template_slug, "confidence": detection.confidence},
    )
    return detection
