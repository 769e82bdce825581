import logging
from typing import List, Mapping, Optional

from app.services.templates import TOKEN_RE

logger = logging.getLogger(__name__)


def _as_text(value: object) -> str:
    # None must never leak into the page as a literal
    return "" if value is None else str(value)


def find_unfilled_tokens(html: str) -> List[str]:
    """Return the distinct ``{{TOKEN}}`` names still present in *html*."""
    return list(dict.fromkeys(TOKEN_RE.findall(html)))


def inject_data(html: str, data: Mapping[str, Optional[object]]) -> str:
    """Replace every ``{{KEY}}`` in *html* with ``data[KEY]``.

    Tokens missing from *data* are left in place and reported as a warning;
    they never make the call fail.
    """
    result = html
    for key, value in data.items():
        result = result.replace("{{" + key + "}}", _as_text(value))

    unfilled = find_unfilled_tokens(result)
    if unfilled:
        logger.warning("Unfilled variables in template: %s", ", ".join(unfilled))
    return result
