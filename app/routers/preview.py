import logging
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import HTMLResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings
from app.models.preview_request import PreviewRequest, TrackEvent
from app.services.preview import generate_preview
from app.services.preview_store import (
    TRACKED_EVENTS,
    PreviewNotFound,
    PreviewStore,
    get_preview_store,
)

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()

_MESSAGE_PAGE = """<!DOCTYPE html><html><head><title>{title}</title></head>
<body style="font-family:sans-serif;display:flex;align-items:center;justify-content:center;height:100vh;background:#f5f5f5;">
  <div style="text-align:center;padding:40px;">
    <h2 style="color:#1B3A5C;">{title}</h2>
    <p style="color:#666;">{message}</p>
  </div>
</body></html>"""


def _message_page(title: str, message: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(_MESSAGE_PAGE.format(title=title, message=message), status_code=status_code)


@router.post(
    "/preview",
    response_class=HTMLResponse,
    summary="Render a preview from explicit template data (not stored)",
)
@limiter.limit("20/minute")
async def render_preview(request: Request, body: PreviewRequest) -> HTMLResponse:
    settings = get_settings()
    preview_id = body.preview_id or str(uuid.uuid4())
    expires_at = body.expires_at or (
        datetime.now(timezone.utc) + timedelta(days=settings.preview_expiry_days)
    )
    html = generate_preview(
        body.template_filename,
        body.injected_data,
        preview_id,
        body.prospect_name,
        expires_at,
        settings.preview_base_url,
        body.color_palette,
    )
    return HTMLResponse(html)


@router.get("/p/{preview_id}", response_class=HTMLResponse, summary="Serve a stored preview")
async def serve_preview(
    preview_id: str,
    store: PreviewStore = Depends(get_preview_store),
) -> HTMLResponse:
    try:
        record = store.load_record(preview_id)
        if store.is_expired(record):
            return _message_page(
                "This Preview Has Expired",
                f"This preview link was valid for {get_settings().preview_expiry_days} days "
                "and has now expired. Contact us to request a fresh preview.",
                410,
            )
        html = store.load_html(preview_id)
    except PreviewNotFound:
        logger.info("Unknown preview requested: %s", preview_id)
        return _message_page(
            "Preview Not Found",
            "This preview link may be invalid or has been deleted.",
            404,
        )

    return HTMLResponse(html, headers={"Cache-Control": "no-store"})


def _record_event(store: PreviewStore, event: TrackEvent) -> None:
    try:
        store.record_event(event.preview_id, event.event)
    except PreviewNotFound:
        logger.debug("Tracking event for unknown preview %s", event.preview_id)
    except OSError as exc:
        logger.warning("Could not record %s for %s: %s", event.event, event.preview_id, exc)


@router.post("/track", summary="Record a preview engagement event")
async def track(
    event: TrackEvent,
    background_tasks: BackgroundTasks,
    store: PreviewStore = Depends(get_preview_store),
) -> dict:
    """Always answers ``{"ok": true}`` so tracking never breaks the page."""
    if event.event in TRACKED_EVENTS:
        background_tasks.add_task(_record_event, store, event)
    return {"ok": True}
