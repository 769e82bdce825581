"""Preview instrumentation: the fixed top banner and the view-tracking beacon.

Both are plain string insertions into the finished document.  They run after
token injection and colour remapping so neither is touched by those stages.
"""

import html as html_module
import json
import logging
import re
from datetime import datetime
from typing import Union

logger = logging.getLogger(__name__)

_BODY_OPEN_RE = re.compile(r"<body[^>]*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body>", re.IGNORECASE)

BANNER_ID = "ps-preview-banner"
CTA_ID = "ps-preview-cta"

_BANNER_TEMPLATE = """
<!-- PREVIEW BANNER -->
<div id="{banner_id}" style="
  position: fixed;
  top: 0; left: 0; right: 0;
  z-index: 99999;
  background: linear-gradient(90deg, #1B3A5C, #2C5282);
  color: #fff;
  padding: 10px 24px;
  display: flex;
  align-items: center;
  justify-content: space-between;
  font-family: sans-serif;
  font-size: 12px;
  box-shadow: 0 2px 12px rgba(0,0,0,0.3);
">
  <div style="display:flex;align-items:center;gap:12px;">
    <span style="font-weight:700;letter-spacing:1px;">&#10022; {brand_name}</span>
    <span style="opacity:.5;">|</span>
    <span style="opacity:.7;">Design preview for <strong style="opacity:1;">{prospect_name}</strong></span>
  </div>
  <div style="display:flex;align-items:center;gap:20px;">
    <span style="opacity:.6;">Expires: {expiry_date}</span>
    <a id="{cta_id}" href="{cta_url}" target="_blank" rel="noopener"
       style="background:#25D366;color:#fff;padding:7px 16px;text-decoration:none;font-weight:700;font-size:11px;letter-spacing:.5px;">
      I'M INTERESTED
    </a>
    <span style="opacity:.3;font-size:10px;">ID: {short_id}</span>
  </div>
</div>
<div style="height:44px;"></div>
<style>
@media(max-width:768px){{
  #{banner_id}{{flex-direction:column!important;gap:8px!important;text-align:center!important;padding:10px 16px!important;}}
  #{banner_id}>div{{justify-content:center!important;}}
  #{banner_id} a{{width:100%!important;text-align:center!important;box-sizing:border-box!important;}}
}}
</style>
<!-- END PREVIEW BANNER -->
"""

_TRACKING_TEMPLATE = """
<!-- PREVIEW TRACKING -->
<script>
(function() {{
  function send(event) {{
    try {{
      fetch({endpoint}, {{
        method: 'POST',
        keepalive: true,
        headers: {{ 'Content-Type': 'application/json' }},
        body: JSON.stringify({{
          preview_id: {preview_id},
          event: event,
          ts: Date.now(),
          ref: document.referrer || 'direct'
        }})
      }}).catch(function() {{}});
    }} catch (e) {{}}
  }}
  send('view');
  var cta = document.getElementById({cta_id});
  if (cta) {{
    cta.addEventListener('click', function() {{ send('cta_click'); }});
  }}
}})();
</script>
<!-- END PREVIEW TRACKING -->
"""


def format_expiry(expires_at: Union[str, datetime]) -> str:
    """Format an expiry timestamp as ``25 October 2026``."""
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    return f"{expires_at.day} {expires_at.strftime('%B')} {expires_at.year}"


def add_preview_banner(
    html: str,
    preview_id: str,
    prospect_name: str,
    expires_at: Union[str, datetime],
    *,
    brand_name: str = "MorningStar.ai",
    cta_url: str = "#",
) -> str:
    """Insert the preview banner immediately after the opening ``<body>`` tag."""
    match = _BODY_OPEN_RE.search(html)
    if not match:
        logger.warning("No <body> tag found; preview banner not inserted for %s", preview_id)
        return html

    banner = _BANNER_TEMPLATE.format(
        banner_id=BANNER_ID,
        cta_id=CTA_ID,
        brand_name=html_module.escape(brand_name.upper()),
        prospect_name=html_module.escape(prospect_name or ""),
        expiry_date=format_expiry(expires_at),
        cta_url=html_module.escape(cta_url, quote=True),
        short_id=html_module.escape(preview_id[:8]),
    )
    return html[: match.end()] + banner + html[match.end():]


def add_tracking(html: str, preview_id: str, base_url: str) -> str:
    """Insert the fire-and-forget view beacon immediately before ``</body>``."""
    match = _BODY_CLOSE_RE.search(html)
    if not match:
        logger.warning("No </body> tag found; tracking not inserted for %s", preview_id)
        return html

    script = _TRACKING_TEMPLATE.format(
        endpoint=json.dumps(base_url.rstrip("/") + "/track"),
        preview_id=json.dumps(preview_id),
        cta_id=json.dumps(CTA_ID),
    )
    return html[: match.start()] + script + html[match.start():]
