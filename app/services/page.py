"""Page handle passed to every extraction heuristic.

A :class:`PageSnapshot` wraps the parsed document of one captured page.  When
the page was rendered by :mod:`app.services.browser_fetcher`, every element
carries ``data-ps-*`` attributes holding its computed style and, for images,
its natural and rendered size.  Pages captured over plain HTTP (or written by
hand in tests) have no such stamps; the snapshot then falls back to inline
``style`` declarations and ``width`` / ``height`` attributes.
"""

import logging
import re
from functools import cached_property
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar
from urllib.parse import urljoin, urlparse

import cssutils
from bs4 import BeautifulSoup, Tag

T = TypeVar("T")

# Disable cssutils log messages
cssutils.log.setLevel(logging.CRITICAL)

# Computed-style property -> attribute stamped by the browser snapshot script
STYLE_STAMPS = {
    "background-color": "data-ps-bg",
    "color": "data-ps-color",
    "font-family": "data-ps-font",
    "background-image": "data-ps-bgimg",
}

_INVISIBLE_TAGS = {"script", "style", "noscript", "template", "head", "title", "svg"}
_INT_RE = re.compile(r"^\s*(\d+)")


def _to_int(value) -> int:
    if value is None:
        return 0
    match = _INT_RE.match(str(value))
    # "100%" is relative to the container, not a pixel size
    if not match or str(value).strip().endswith("%"):
        return 0
    return int(match.group(1))


def _inline_style(tag: Tag) -> dict:
    """Return ``{property: value}`` for the declarations of *tag*'s ``style`` attribute."""
    style = tag.get("style")
    if not style or not str(style).strip():
        return {}
    declaration = cssutils.parseStyle(str(style), validate=False)
    return {prop.name: prop.value.strip() for prop in declaration}


class PageSnapshot:
    """Read-only view of a captured page."""

    def __init__(self, html: str, url: str) -> None:
        self.url = url
        self.soup = BeautifulSoup(html, "lxml")

    # ── URLs ────────────────────────────────────────────────────────────────

    def absolute_url(self, src: Optional[str]) -> Optional[str]:
        """Resolve *src* against the page URL; only http(s) URLs are returned."""
        if not src:
            return None
        src = str(src).strip()
        if not src or src.startswith("data:"):
            return None
        resolved = urljoin(self.url, src)
        if urlparse(resolved).scheme not in ("http", "https"):
            return None
        return resolved

    # ── Styles and sizes ────────────────────────────────────────────────────

    def style(self, tag: Tag, prop: str) -> Optional[str]:
        """Return the computed (or inline) value of CSS *prop* for *tag*."""
        stamp = STYLE_STAMPS.get(prop)
        if stamp and tag.has_attr(stamp):
            return str(tag[stamp]).strip() or None

        declarations = _inline_style(tag)
        if prop in declarations:
            return declarations[prop] or None
        if prop == "background-image" and "url(" in declarations.get("background", ""):
            return declarations["background"]
        return None

    def image_size(self, img: Tag) -> Tuple[int, int]:
        """Return ``(width, height)`` as the larger of natural and rendered size."""
        width = max(
            _to_int(img.get("data-ps-nw")),
            _to_int(img.get("data-ps-w")),
            _to_int(img.get("width")),
        )
        height = max(
            _to_int(img.get("data-ps-nh")),
            _to_int(img.get("data-ps-h")),
            _to_int(img.get("height")),
        )
        return width, height

    # ── Document helpers ────────────────────────────────────────────────────

    def meta_content(self, key: str) -> Optional[str]:
        """Return the ``content`` of the first ``<meta>`` whose name or property is *key*."""
        for attr in ("property", "name"):
            meta = self.soup.find("meta", attrs={attr: key})
            if meta and meta.get("content"):
                return str(meta["content"]).strip() or None
        return None

    @cached_property
    def title(self) -> str:
        tag = self.soup.find("title")
        return tag.get_text(strip=True) if tag else ""

    @cached_property
    def visible_text(self) -> str:
        """Text content of the page, one text node per line."""
        root = self.soup.body or self.soup
        chunks = []
        for text in root.find_all(string=True):
            if text.parent is not None and text.parent.name in _INVISIBLE_TAGS:
                continue
            stripped = text.strip()
            if stripped:
                chunks.append(stripped)
        return "\n".join(chunks)

    @cached_property
    def text_lines(self) -> List[str]:
        """Visible text split into block-level lines with whitespace collapsed."""
        root = self.soup.body or self.soup
        lines = []
        for tag in root.find_all(["p", "li", "address", "span", "div", "td"]):
            if tag.find(["p", "li", "div", "address"]):
                continue
            line = " ".join(tag.get_text(" ", strip=True).split())
            if line:
                lines.append(line)
        return lines


def attr_haystack(tag: Tag, *attrs: str) -> str:
    """Lowercased concatenation of *attrs* on *tag* (class lists joined)."""
    parts = []
    for attr in attrs:
        value = tag.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        if value:
            parts.append(str(value))
    return " ".join(parts).lower()


def first_hit(
    strategies: Iterable[Callable[[PageSnapshot], Optional[T]]],
    snapshot: PageSnapshot,
) -> Optional[T]:
    """Run *strategies* in order and return the first non-empty result."""
    for strategy in strategies:
        result = strategy(snapshot)
        if result:
            return result
    return None


def dedupe(items: Iterable[T], limit: Optional[int] = None) -> List[T]:
    """Drop duplicates preserving order, optionally keeping only *limit* items."""
    seen: set = set()
    result: List[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
        if limit is not None and len(result) >= limit:
            break
    return result
