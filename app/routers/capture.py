import logging

import httpx
from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.models.capture import Capture
from app.models.capture_request import CaptureRequest
from app.services.browser_fetcher import fetch_url_with_browser
from app.services.extractor import extract
from app.services.fetcher import fetch_url

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post("/capture", response_model=Capture, summary="Capture a prospect's web page")
@limiter.limit("10/minute")
async def capture_page(request: Request, body: CaptureRequest) -> Capture:
    """Obtain the page at *url* and run every extraction heuristic over it.

    When ``html`` is supplied it is used as-is and nothing is fetched.
    Otherwise ``render_mode`` decides how the page is obtained:

    * ``"auto"`` – Headless browser first; plain HTTP when the browser fails.
    * ``"http"`` – Plain HTTP only.
    * ``"browser"`` – Headless browser only.
    """
    url = str(body.url)
    logger.info("Capture request received", extra={"url": url, "render_mode": body.render_mode})

    # ── Step 1: obtain HTML ───────────────────────────────────────────────────
    if body.html is not None:
        html = body.html
    elif body.render_mode == "http":
        html = await _fetch_with_http(url)
    elif body.render_mode == "browser":
        html = await _fetch_with_browser(url)
    else:
        html = await _fetch_auto(url)

    # ── Step 2: extract ───────────────────────────────────────────────────────
    return extract(html, url)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _fetch_auto(url: str) -> str:
    """Render with the browser, falling back to plain HTTP on browser failure."""
    try:
        return await fetch_url_with_browser(url)
    except ValueError as exc:
        logger.warning("Invalid or blocked URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        # Browser rendering failed; colour/font heuristics will only see inline styles.
        logger.warning("Browser rendering failed for %s (%s) – using HTTP fetch", url, exc)
    return await _fetch_with_http(url)


async def _fetch_with_http(url: str) -> str:
    """Fetch *url* via plain HTTP and propagate errors as HTTP exceptions."""
    try:
        return await fetch_url(url)
    except ValueError as exc:
        logger.warning("Invalid or blocked URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except httpx.TimeoutException:
        logger.error("Timeout fetching URL: %s", url)
        raise HTTPException(status_code=504, detail="The target URL timed out.")
    except httpx.HTTPStatusError as exc:
        logger.error("HTTP error fetching URL %s: %s", url, exc)
        raise HTTPException(
            status_code=502, detail=f"Target URL returned HTTP {exc.response.status_code}."
        )
    except (httpx.RequestError, RuntimeError) as exc:
        logger.error("Error fetching URL %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=str(exc))


async def _fetch_with_browser(url: str) -> str:
    """Render *url* with a headless browser and propagate errors as HTTP exceptions."""
    try:
        return await fetch_url_with_browser(url)
    except ValueError as exc:
        logger.warning("Invalid or blocked URL (browser): %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except RuntimeError as exc:
        logger.error("Browser rendering error for %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    except Exception as exc:
        logger.error("Unexpected browser error for %s: %s", url, exc)
        raise HTTPException(status_code=502, detail="Browser rendering failed.")
