"""Plain HTTP capture of a prospect's home page.

Used by ``POST /capture`` in ``http`` mode and as the fallback when browser
rendering fails.  The page arrives without computed styles, so the colour,
font and image-size heuristics only see inline ``style`` declarations and
explicit ``width`` / ``height`` attributes.

The capture URL comes from the caller, so every URL (and every redirect hop)
is checked by :func:`validate_url` before a connection is made; the browser
renderer shares the same check.
"""

import ipaddress
import logging
import socket
from urllib.parse import urljoin, urlparse

import httpx

logger = logging.getLogger(__name__)

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
TIMEOUT = 15  # seconds
MAX_REDIRECTS = 10
ALLOWED_SCHEMES = {"http", "https"}

# Many small-business sites serve a stripped page (or a 403) to unknown clients
REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-AE,en;q=0.9,ar;q=0.5",
}


def _is_private_address(hostname: str) -> bool:
    """Return True if *hostname* resolves to a private, loopback, or link-local address."""
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror:
        return False

    for info in infos:
        # Strip IPv6 zone IDs (e.g. "::1%eth0" → "::1")
        raw_ip = info[4][0].split("%")[0]
        try:
            addr = ipaddress.ip_address(raw_ip)
        except ValueError:
            continue
        if addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved:
            return True
    return False


def validate_url(url: str) -> None:
    """Raise ValueError unless *url* is a public http(s) URL.

    The router maps the ValueError to HTTP 400.
    """
    parsed = urlparse(url)

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    hostname = parsed.hostname
    if not hostname:
        raise ValueError("URL must have a valid hostname.")

    if _is_private_address(hostname):
        raise ValueError("Requests to private/internal addresses are not allowed.")


async def fetch_url(url: str) -> str:
    """Fetch the prospect page at *url* and return its decoded HTML.

    The request presents itself as a desktop browser in the en-AE locale so
    that small-business sites serve the same page a prospect's customers see.
    The body is decoded with the charset the server declares, falling back to
    UTF-8.

    Redirects are followed manually so that every hop is validated before it
    is requested.

    Raises:
        ValueError: if the URL (or a redirect target) fails validation.
        httpx.HTTPError: on network or HTTP errors.
        RuntimeError: on too many redirects or a body over MAX_CONTENT_SIZE.
    """
    validate_url(url)

    current_url = url
    async with httpx.AsyncClient(
        follow_redirects=False, timeout=TIMEOUT, headers=REQUEST_HEADERS
    ) as client:
        for _ in range(MAX_REDIRECTS + 1):
            async with client.stream("GET", current_url) as response:
                if response.is_redirect:
                    next_url = urljoin(current_url, response.headers.get("location", ""))
                    validate_url(next_url)
                    logger.debug("Following redirect %s -> %s", current_url, next_url)
                    current_url = next_url
                    continue

                response.raise_for_status()

                content_length = response.headers.get("content-length")
                if content_length and int(content_length) > MAX_CONTENT_SIZE:
                    raise RuntimeError("Response body exceeds the maximum allowed size.")

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > MAX_CONTENT_SIZE:
                        raise RuntimeError("Response body exceeds the maximum allowed size.")
                    chunks.append(chunk)

                encoding = response.encoding or "utf-8"
                return b"".join(chunks).decode(encoding, errors="replace")

    raise RuntimeError("Too many redirects.")
