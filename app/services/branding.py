"""Brand palette and typography heuristics."""

import re
from collections import Counter
from typing import List, Optional

from app.services.page import PageSnapshot, dedupe

MAX_COLORS = 8
MAX_FONTS = 4

# Elements most likely to carry brand colours
BRAND_SELECTORS = (
    "header", "nav", "footer",
    "h1", "h2", "h3",
    "a", "button",
    ".hero", ".banner", ".header", ".navbar", ".nav",
    "[class*='brand']", "[class*='primary']", "[class*='accent']",
)
# Broad containers sampled as well
CONTAINER_SELECTORS = ("body", "main", "section")

# Pure white/black and the common greys.  Near-variants are deliberately kept.
BORING_COLORS = {
    "#ffffff", "#000000", "#f5f5f5", "#fafafa",
    "#f0f0f0", "#e0e0e0", "#cccccc", "#333333",
    "#666666", "#999999", "#eeeeee", "#dddddd",
    "#f8f8f8", "#f9f9f9", "#fbfbfb", "#fcfcfc",
    "#111111", "#222222", "#444444", "#555555",
    "#777777", "#888888", "#aaaaaa", "#bbbbbb",
}

GENERIC_FONTS = {
    "serif", "sans-serif", "monospace", "cursive", "fantasy", "math", "emoji",
    "system-ui", "ui-serif", "ui-sans-serif", "ui-monospace", "ui-rounded",
    "-apple-system", "blinkmacsystemfont", "segoe ui", "apple color emoji",
    "segoe ui emoji", "segoe ui symbol", "noto color emoji",
    "inherit", "initial", "unset", "revert",
}

_RGB_RE = re.compile(
    r"rgba?\(\s*(\d{1,3})\s*[,\s]\s*(\d{1,3})\s*[,\s]\s*(\d{1,3})(?:\s*[,/]\s*([\d.]+%?))?\s*\)",
    re.IGNORECASE,
)
_HEX_RE = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$", re.IGNORECASE)


def css_color_to_hex(value: Optional[str]) -> Optional[str]:
    """Convert ``rgb()``/``rgba()``/hex CSS colours to ``#rrggbb``.

    Fully transparent colours and anything else (keywords, gradients) give None.
    """
    if not value:
        return None
    value = value.strip()

    match = _RGB_RE.match(value)
    if match:
        alpha = match.group(4)
        if alpha is not None:
            alpha_value = float(alpha.rstrip("%"))
            if alpha_value == 0:
                return None
        r, g, b = (min(255, int(match.group(i))) for i in (1, 2, 3))
        return f"#{r:02x}{g:02x}{b:02x}"

    match = _HEX_RE.match(value)
    if match:
        digits = match.group(1).lower()
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return f"#{digits}"
    return None


def is_boring_color(hex_color: str) -> bool:
    return hex_color.lower() in BORING_COLORS


def extract_colors(snapshot: PageSnapshot) -> List[str]:
    """Most frequent non-neutral colours across brand-likely elements."""
    counts: Counter = Counter()
    for selector in BRAND_SELECTORS + CONTAINER_SELECTORS:
        for element in snapshot.soup.select(selector):
            for prop in ("background-color", "color"):
                hex_color = css_color_to_hex(snapshot.style(element, prop))
                if hex_color and not is_boring_color(hex_color):
                    counts[hex_color] += 1
    return [color for color, _count in counts.most_common(MAX_COLORS)]


def parse_font_family(value: str) -> List[str]:
    """Split a CSS ``font-family`` list into bare family names."""
    families = []
    for raw in value.split(","):
        name = raw.strip().strip("'\"").strip()
        if name and name.lower() not in GENERIC_FONTS:
            families.append(name)
    return families


def extract_fonts(snapshot: PageSnapshot) -> List[str]:
    soup = snapshot.soup
    elements = [soup.body, soup.find("h1"), soup.find("h2"), soup.find("nav")]
    families: List[str] = []
    for element in elements:
        if element is None:
            continue
        value = snapshot.style(element, "font-family")
        if value:
            families.extend(parse_font_family(value))
    return dedupe(families, MAX_FONTS)
