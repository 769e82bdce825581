from typing import Literal

from pydantic import BaseModel, Field, HttpUrl


class CaptureRequest(BaseModel):
    url: HttpUrl
    render_mode: Literal["auto", "http", "browser"] = "auto"
    """How the page is obtained.

    ``"auto"`` (default)
        Render with headless Chromium so computed colours, fonts and image
        sizes are available; fall back to a plain HTTP fetch when the browser
        fails.

    ``"http"``
        Plain HTTP fetch only.  Fast, but colour/font/size heuristics only see
        inline styles and explicit ``width``/``height`` attributes.

    ``"browser"``
        Always render with the browser; browser failures are errors.
    """
    html: str | None = Field(
        default=None,
        description="Already-captured page HTML (e.g. sent by the browser extension). Skips fetching.",
    )
