"""Hex colour arithmetic used to adapt template palettes to a brand colour.

All functions work on ``#RRGGBB`` strings and never raise: malformed channels
parse to ``nan`` and render back as ``00``.  Callers that care should check
:func:`is_hex_color` first.
"""

import math
import re
from typing import Tuple

_HEX6_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def is_hex_color(value: str) -> bool:
    """Return True when *value* is a six-digit ``#RRGGBB`` colour."""
    return bool(value) and bool(_HEX6_RE.match(value.strip()))


def _channel(pair: str) -> float:
    try:
        return float(int(pair, 16))
    except ValueError:
        return math.nan


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; browsers round .5 up
    return int(math.floor(value + 0.5))


def hex_to_rgb(hex_color: str) -> Tuple[float, float, float]:
    clean = hex_color.replace("#", "")
    return _channel(clean[0:2]), _channel(clean[2:4]), _channel(clean[4:6])


def rgb_to_hex(r: float, g: float, b: float) -> str:
    """Clamp, round and format three channels as a lowercase ``#rrggbb`` string."""
    parts = []
    for value in (r, g, b):
        if math.isnan(value):
            value = 0
        parts.append(f"{max(0, min(255, _round_half_up(value))):02x}")
    return "#" + "".join(parts)


def tint_color(hex_color: str, factor: float) -> str:
    """Mix *hex_color* with white (0 = unchanged, 1 = white)."""
    r, g, b = hex_to_rgb(hex_color)
    return rgb_to_hex(
        r + (255 - r) * factor,
        g + (255 - g) * factor,
        b + (255 - b) * factor,
    )


def shade_color(hex_color: str, factor: float) -> str:
    """Darken *hex_color* toward black (0 = unchanged, 1 = black)."""
    r, g, b = hex_to_rgb(hex_color)
    return rgb_to_hex(r * (1 - factor), g * (1 - factor), b * (1 - factor))


def derive_ink(hex_color: str) -> str:
    """Near-black body-text colour that keeps a hint of the brand hue."""
    r, g, b = hex_to_rgb(hex_color)
    return rgb_to_hex(r * 0.08, g * 0.12 + 10, b * 0.10 + 5)


def derive_muted(hex_color: str) -> str:
    """Desaturated mid-tone for secondary text."""
    r, g, b = hex_to_rgb(hex_color)
    return rgb_to_hex(r * 0.30 + 80, g * 0.35 + 85, b * 0.30 + 80)
