"""JSON-LD (``<script type="application/ld+json">``) reader."""

import json
import logging
from typing import Iterator, Set

from app.services.page import PageSnapshot

logger = logging.getLogger(__name__)


def _walk(node) -> Iterator[dict]:
    if isinstance(node, dict):
        yield node
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk(item)


def iter_nodes(snapshot: PageSnapshot) -> Iterator[dict]:
    """Yield every JSON object found in the page's JSON-LD blocks, parents first.

    Blocks that are not valid JSON are skipped.
    """
    for script in snapshot.soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.debug("Skipping malformed JSON-LD on %s: %s", snapshot.url, exc)
            continue
        yield from _walk(data)


def node_types(node: dict) -> Set[str]:
    """Return the lowercased ``@type`` values of *node*."""
    raw = node.get("@type")
    if isinstance(raw, str):
        return {raw.lower()}
    if isinstance(raw, list):
        return {t.lower() for t in raw if isinstance(t, str)}
    return set()
