"""Thin wrapper around the Anthropic Messages API."""

import json
import logging
import re
from typing import Optional

import anthropic

from app.config import get_settings

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

_client: Optional[anthropic.AsyncAnthropic] = None


class LLMResponseError(ValueError):
    """The model replied with something that is not a JSON object."""


def _get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=get_settings().anthropic_api_key or None)
    return _client


async def call_model(system: str, user: str, max_tokens: Optional[int] = None) -> str:
    """Send one system + user prompt and return the concatenated text reply.

    Raises:
        anthropic.AnthropicError: on client, API or network failures (not retried here).
    """
    settings = get_settings()
    response = await _get_client().messages.create(
        model=settings.default_model,
        max_tokens=max_tokens or settings.llm_max_tokens,
        system=system,
        messages=[{"role": "user", "content": user}],
    )
    return "".join(block.text for block in response.content if block.type == "text")


def parse_json_reply(text: str) -> dict:
    """Decode a model reply that should hold one JSON object.

    Markdown fences around the object are tolerated.
    """
    cleaned = _FENCE_RE.sub("", text or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise LLMResponseError(f"Model reply is not JSON: {cleaned[:200]!r}") from exc
    if not isinstance(data, dict):
        raise LLMResponseError(f"Model reply is not a JSON object: {type(data).__name__}")
    return data
