"""Rewrite a template's ``:root`` colour variables to match a scraped palette.

Templates do not declare a colour schema.  Structure is inferred from
variable names instead:

* the first non-structural variable holding a hex colour is the primary
  *family* base (``--teal``), and every colour variable that starts with its
  prefix belongs to the family (``--teal-lt``, ``--teal-mid``);
* ``-lt`` / ``-pale`` members become a tint of the new colour, ``-mid``
  members a shade, and any other suffix is left alone;
* the first colour variable outside the primary family seeds an optional
  secondary family, remapped to ``palette[1]`` with the same rules;
* ``--ink`` and ``--muted`` are re-derived from the primary colour.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from app.services.color_math import (
    derive_ink,
    derive_muted,
    is_hex_color,
    shade_color,
    tint_color,
)

logger = logging.getLogger(__name__)

# First :root block, single-line or multiline
_ROOT_RE = re.compile(r":root\s*\{([^}]+)\}")
_VAR_RE = re.compile(r"--([\w-]+)\s*:\s*([^;]+)")
_HEX_VALUE_RE = re.compile(r"^#[0-9a-fA-F]{3,8}$")

# Variables that carry neutrals/text colours rather than brand colour
STRUCTURAL_NAMES = {"white", "off", "ink", "muted", "border", "text", "warm-white", "cream"}

TINT_FACTOR = 0.88
SHADE_FACTOR = 0.10


def parse_root_variables(block: str) -> Dict[str, str]:
    """Return ``{name: value}`` for every ``--name:value`` in *block*, in order."""
    return {name: value.strip() for name, value in _VAR_RE.findall(block)}


def _is_hex(value: str) -> bool:
    return bool(_HEX_VALUE_RE.match(value))


def _color_variables(variables: Dict[str, str]) -> List[str]:
    return [
        name
        for name, value in variables.items()
        if name.lower() not in STRUCTURAL_NAMES and _is_hex(value)
    ]


def _prefix(name: str) -> str:
    return name.split("-")[0]


def _remap_family(
    names: Sequence[str],
    base: str,
    color: str,
    updated: Dict[str, str],
) -> None:
    prefix = _prefix(base)
    for name in names:
        if name != base and not name.startswith(prefix):
            continue
        if name == base:
            updated[name] = color
        elif "-lt" in name or "-pale" in name:
            updated[name] = tint_color(color, TINT_FACTOR)
        elif "-mid" in name:
            updated[name] = shade_color(color, SHADE_FACTOR)


def apply_brand_colors(html: str, palette: Optional[Sequence[str]]) -> str:
    """Return *html* with its first ``:root`` block remapped to *palette*.

    Missing palette, missing ``:root`` block, or a block without colour
    variables all return *html* unchanged.
    """
    colors = [c.strip() for c in (palette or []) if c and is_hex_color(c)]
    if len(colors) < len(palette or []):
        logger.warning("Ignoring malformed palette entries: %s", palette)
    if not colors:
        return html

    match = _ROOT_RE.search(html)
    if not match:
        return html

    variables = parse_root_variables(match.group(1))
    if not variables:
        return html

    color_vars = _color_variables(variables)
    if not color_vars:
        return html

    primary = colors[0]
    base = color_vars[0]
    updated = dict(variables)
    _remap_family(color_vars, base, primary, updated)

    if len(colors) > 1:
        base_prefix = _prefix(base)
        remaining = [name for name in color_vars if not name.startswith(base_prefix)]
        if remaining:
            _remap_family(remaining, remaining[0], colors[1], updated)

    ink = variables.get("ink")
    if ink and _is_hex(ink):
        updated["ink"] = derive_ink(primary)
    muted = variables.get("muted")
    if muted and _is_hex(muted) and "rgba" not in muted:
        updated["muted"] = derive_muted(primary)

    content = ";".join(f"--{name}:{value}" for name, value in updated.items())
    new_block = f":root{{{content};}}"
    logger.debug("Remapped :root colours from %s to %s", base, primary)
    return html[: match.start()] + new_block + html[match.end():]
