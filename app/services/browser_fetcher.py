"""Playwright renderer producing style-annotated page snapshots.

After the page settles, an in-page script copies the computed values the
extraction heuristics need onto ``data-ps-*`` attributes of every element
(see :data:`app.services.page.STYLE_STAMPS`), so the serialized HTML carries
them to :class:`app.services.page.PageSnapshot`.
"""

import logging

from playwright.async_api import async_playwright

from app.services.fetcher import MAX_CONTENT_SIZE, REQUEST_HEADERS, validate_url

logger = logging.getLogger(__name__)

TIMEOUT_MS = 30_000  # 30 s in milliseconds
SETTLE_MS = 1_500  # let sliders / lazy images start before stamping
VIEWPORT = {"width": 1440, "height": 900}

_STAMP_SCRIPT = """() => {
  const stamp = (el, name, value) => {
    if (value !== undefined && value !== null && value !== '') el.setAttribute(name, String(value));
  };
  document.querySelectorAll('*').forEach(el => {
    const style = getComputedStyle(el);
    stamp(el, 'data-ps-bg', style.backgroundColor);
    stamp(el, 'data-ps-color', style.color);
    stamp(el, 'data-ps-font', style.fontFamily);
    if (style.backgroundImage && style.backgroundImage !== 'none') {
      stamp(el, 'data-ps-bgimg', style.backgroundImage);
    }
    if (el.tagName === 'IMG') {
      const rect = el.getBoundingClientRect();
      stamp(el, 'data-ps-src', el.currentSrc || el.src);
      stamp(el, 'data-ps-nw', el.naturalWidth);
      stamp(el, 'data-ps-nh', el.naturalHeight);
      stamp(el, 'data-ps-w', Math.round(rect.width));
      stamp(el, 'data-ps-h', Math.round(rect.height));
    }
  });
}"""


async def fetch_url_with_browser(url: str, *, wait_ms: int = SETTLE_MS) -> str:
    """Render *url* in headless Chromium and return the style-stamped HTML.

    Raises:
        ValueError: if the URL fails validation.
        RuntimeError: if the rendered HTML exceeds MAX_CONTENT_SIZE.
        playwright.async_api.Error: on browser/network errors.
    """
    validate_url(url)

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=True,
            args=[
                # --no-sandbox is required when running as root inside a container
                "--no-sandbox",
                "--disable-dev-shm-usage",
                "--disable-gpu",
            ],
        )
        context = await browser.new_context(
            viewport=VIEWPORT,
            user_agent=REQUEST_HEADERS["User-Agent"],
            locale="en-AE",
        )
        page = await context.new_page()
        try:
            await page.goto(url, wait_until="networkidle", timeout=TIMEOUT_MS)
            if wait_ms > 0:
                await page.wait_for_timeout(wait_ms)
            await page.evaluate(_STAMP_SCRIPT)
            html = await page.content()
        finally:
            await context.close()
            await browser.close()

    if len(html.encode()) > MAX_CONTENT_SIZE:
        raise RuntimeError("Rendered HTML exceeds the maximum allowed size.")

    logger.debug("Rendered %s (%d bytes)", url, len(html))
    return html
