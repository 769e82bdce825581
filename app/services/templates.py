"""Read-only template store backed by a directory of HTML files."""

import logging
import os
import re
from typing import List, Optional, Set

from app.config import get_settings

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{\{([A-Z][A-Z0-9_]*)\}\}")
_BODY_OPEN_RE = re.compile(r"<body[^>]*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body>", re.IGNORECASE)


class TemplateError(LookupError):
    """Base class for template store failures."""


class TemplateNotFound(TemplateError):
    def __init__(self, filename: str) -> None:
        super().__init__(f"Template not found: {filename}")
        self.filename = filename


class MalformedTemplate(TemplateError):
    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"Malformed template {filename}: {reason}")
        self.filename = filename
        self.reason = reason


def _template_dir(template_dir: Optional[str]) -> str:
    return template_dir or get_settings().template_dir


def _resolve(filename: str, template_dir: Optional[str]) -> str:
    root = os.path.realpath(_template_dir(template_dir))
    path = os.path.realpath(os.path.join(root, filename))
    # Reject names that escape the template directory ("../secrets.html")
    if os.path.dirname(path) != root:
        raise TemplateNotFound(filename)
    return path


def load_template(filename: str, template_dir: Optional[str] = None) -> str:
    """Return the HTML of template *filename*.

    Raises:
        TemplateNotFound: if no such file exists in the template directory.
        MalformedTemplate: if the document has no ``<body>`` / ``</body>`` pair,
            since the preview banner and tracking script have nowhere to go.
    """
    path = _resolve(filename, template_dir)
    if not os.path.isfile(path):
        raise TemplateNotFound(filename)

    with open(path, encoding="utf-8") as fh:
        html = fh.read()

    if not _BODY_OPEN_RE.search(html) or not _BODY_CLOSE_RE.search(html):
        raise MalformedTemplate(filename, "missing <body> or </body> tag")
    return html


def list_templates(template_dir: Optional[str] = None) -> List[str]:
    """Return the sorted template filenames available in the store."""
    root = _template_dir(template_dir)
    if not os.path.isdir(root):
        logger.warning("Template directory does not exist: %s", root)
        return []
    return sorted(name for name in os.listdir(root) if name.endswith(".html"))


def template_filename(slug: str) -> str:
    """Map a template slug (``medical-gp``) to its filename (``medical-gp.html``)."""
    return slug if slug.endswith(".html") else f"{slug}.html"


def get_template_variables(filename: str, template_dir: Optional[str] = None) -> Set[str]:
    """Return the distinct ``{{TOKEN}}`` names referenced by template *filename*."""
    html = load_template(filename, template_dir)
    return set(TOKEN_RE.findall(html))
