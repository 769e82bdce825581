"""Preview generation pipeline: template → tokens → colours → banner → tracking."""

import logging
from datetime import datetime
from typing import Mapping, Optional, Sequence, Union

from app.config import get_settings
from app.services.brand_colors import apply_brand_colors
from app.services.injector import inject_data
from app.services.overlay import add_preview_banner, add_tracking
from app.services.templates import load_template

logger = logging.getLogger(__name__)


def generate_preview(
    template_filename: str,
    injected_data: Mapping[str, Optional[object]],
    preview_id: str,
    prospect_name: str,
    expires_at: Union[str, datetime],
    base_url: str,
    color_palette: Optional[Sequence[str]] = None,
    *,
    template_dir: Optional[str] = None,
) -> str:
    """Build the final preview HTML for one prospect.

    The stage order is fixed.  Tokens are injected before colour remapping,
    and the banner and tracking script are added last so that they are never
    subject to token substitution or colour rewriting.

    Raises:
        TemplateNotFound: if *template_filename* is not in the template store.
        MalformedTemplate: if the template has no ``<body>`` element.
    """
    settings = get_settings()
    html = load_template(template_filename, template_dir)
    html = inject_data(html, injected_data)
    html = apply_brand_colors(html, color_palette)
    html = add_preview_banner(
        html,
        preview_id,
        prospect_name,
        expires_at,
        brand_name=settings.brand_name,
        cta_url=settings.cta_url,
    )
    html = add_tracking(html, preview_id, base_url)
    logger.info(
        "Preview generated",
        extra={"preview_id": preview_id, "template": template_filename},
    )
    return html
