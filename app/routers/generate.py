"""Preview generation endpoint: capture → detection → token data → stored preview."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings
from app.models.detection import Detection
from app.models.generate_request import GenerateRequest
from app.models.generate_response import GenerateResponse
from app.models.preview_record import PreviewRecord
from app.services.detector import detect_template
from app.services.enrichment import extract_injection_data
from app.services.injector import find_unfilled_tokens
from app.services.preview import generate_preview
from app.services.preview_store import PreviewStore, get_preview_store
from app.services.templates import template_filename

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post(
    "/generate",
    response_model=GenerateResponse,
    summary="Generate and store a brand-adapted preview for a capture",
    description=(
        "Detects the prospect's vertical and the best template (unless "
        "`template_slug` is given), extracts the template's token values, "
        "renders the preview and stores it with an expiry.\n\n"
        "Model failures fall back to a default template and to the literal "
        "capture data; a missing template file is the only fatal error (404)."
    ),
)
@limiter.limit("5/minute")
async def generate(
    request: Request,
    body: GenerateRequest,
    store: PreviewStore = Depends(get_preview_store),
) -> GenerateResponse:
    settings = get_settings()
    capture = body.capture
    prospect_name = (
        body.prospect_name
        or capture.business_name
        or urlparse(capture.page_url).hostname
        or capture.page_url
    )
    logger.info("Generate request received", extra={"url": capture.page_url})

    # ── 1. Vertical + template ────────────────────────────────────────────────
    if body.template_slug:
        detection = Detection(
            vertical=body.vertical or "other",
            template_slug=body.template_slug,
            reasoning="Template chosen by caller",
            confidence="high",
        )
    else:
        detection = await detect_template(capture, prospect_vertical=body.vertical)

    # ── 2. Token values ───────────────────────────────────────────────────────
    injected_data = await extract_injection_data(
        capture, detection.vertical, detection.sub_vertical, prospect_name=prospect_name
    )

    # ── 3. Render (TemplateNotFound propagates to the 404 handler) ───────────
    preview_id = str(uuid.uuid4())
    created_at = datetime.now(timezone.utc)
    expires_at = created_at + timedelta(days=settings.preview_expiry_days)
    html = generate_preview(
        template_filename(detection.template_slug),
        injected_data,
        preview_id,
        prospect_name,
        expires_at,
        settings.preview_base_url,
        capture.color_palette,
    )

    # ── 4. Store ──────────────────────────────────────────────────────────────
    store.save(
        PreviewRecord(
            preview_id=preview_id,
            template_slug=detection.template_slug,
            prospect_name=prospect_name,
            page_url=capture.page_url,
            created_at=created_at,
            expires_at=expires_at,
            injected_data=injected_data,
        ),
        html,
    )

    preview_url = f"{settings.preview_base_url.rstrip('/')}/p/{preview_id}"
    logger.info("Preview ready: %s → %s", prospect_name, detection.template_slug)

    return GenerateResponse(
        preview_id=preview_id,
        preview_url=preview_url,
        template_used=detection.template_slug,
        vertical=detection.vertical,
        sub_vertical=detection.sub_vertical,
        confidence=detection.confidence,
        reasoning=detection.reasoning,
        expires_at=expires_at,
        injected_data=injected_data,
        unfilled_tokens=find_unfilled_tokens(html),
    )
