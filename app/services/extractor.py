"""Page extractor: runs every capture heuristic over one page snapshot.

Each heuristic is an independent function of a :class:`PageSnapshot`.  The
driver runs them one by one and turns any unexpected failure into the
heuristic's empty value, so a broken page never breaks a capture.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple, TypeVar

from bs4 import Tag

from app.models.capture import Capture, Heading
from app.services.branding import extract_colors, extract_fonts
from app.services.contacts import (
    extract_address,
    extract_doctor_names,
    extract_emails,
    extract_phones,
)
from app.services.imagery import collect_images, extract_hero_image, extract_logo
from app.services.page import PageSnapshot, attr_haystack, dedupe, first_hit
from app.services.structured_data import iter_nodes, node_types

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_CONTENT_CHARS = 2000
_PARAGRAPH_MIN, _PARAGRAPH_MAX = 30, 500
_SERVICE_MIN, _SERVICE_MAX = 3, 80
_H1_NAME_MIN, _H1_NAME_MAX = 2, 60

# Separators between the business name and the rest of a <title>
_TITLE_SEPARATOR_RE = re.compile(r"\s*(?:\||::|\s-\s|–|—)\s*")

_ORG_TYPE_KEYWORDS = ("organization", "business", "clinic", "store", "dentist", "hospital", "pharmacy")

# Ancestors whose text is navigation chrome rather than page content
_NOISE_TAGS = {"nav", "header", "footer"}
_NOISE_KEYWORDS = ("nav", "header", "footer", "menu", "cookie", "banner")
_PAGE_ROOT_TAGS = {"main", "body", "html", "[document]"}

_BOOKING_LINK_KEYWORDS = (
    "calendly", "practo", "zocdoc", "okadoc", "booksy", "fresha", "setmore",
    "simplybook", "acuityscheduling", "appointy", "vagaro",
    "booking", "/book", "book-now", "appointment", "reservation",
)
_BOOKING_TEXT_KEYWORDS = (
    "book now", "book an appointment", "book appointment", "book online",
    "make an appointment", "request an appointment", "schedule an appointment",
)
# Matched against whole class/id tokens; "fa-facebook-f" must not look like "book-"
_BOOKING_ATTR_KEYWORDS = ("booking", "appointment", "calendly")
_BOOKING_ATTR_PREFIXES = ("book-", "book_")
_BOOKING_ACTION_KEYWORDS = ("booking", "appointment", "calendly", "/book")
_WHATSAPP_KEYWORDS = ("wa.me", "whatsapp.com", "api.whatsapp")
_INSTAGRAM_KEYWORDS = ("instagram.com",)
_MAPS_KEYWORDS = ("google.com/maps", "maps.google.", "goo.gl/maps", "maps.app.goo.gl")


# ---------------------------------------------------------------------------
# Text heuristics
# ---------------------------------------------------------------------------

def _clean_text(tag: Tag) -> str:
    return " ".join(tag.get_text(" ", strip=True).split())


def collect_headings(snapshot: PageSnapshot) -> List[Heading]:
    headings = []
    for tag in snapshot.soup.find_all(["h1", "h2"]):
        text = _clean_text(tag)
        if text:
            headings.append(Heading(tag=tag.name, text=text))
    return headings


def collect_meta(snapshot: PageSnapshot) -> Tuple[str, str]:
    """Return ``(title, meta description)``."""
    description = ""
    meta = snapshot.soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        description = str(meta["content"]).strip()
    return snapshot.title, description


def name_from_og_site_name(snapshot: PageSnapshot) -> Optional[str]:
    return snapshot.meta_content("og:site_name")


def name_from_structured_data(snapshot: PageSnapshot) -> Optional[str]:
    for node in iter_nodes(snapshot):
        types = node_types(node)
        if not any(keyword in t for t in types for keyword in _ORG_TYPE_KEYWORDS):
            continue
        name = node.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
    return None


def name_from_h1(snapshot: PageSnapshot) -> Optional[str]:
    h1 = snapshot.soup.find("h1")
    if h1 is None:
        return None
    text = _clean_text(h1)
    return text if _H1_NAME_MIN <= len(text) <= _H1_NAME_MAX else None


def name_from_title(snapshot: PageSnapshot) -> Optional[str]:
    if not snapshot.title:
        return None
    return _TITLE_SEPARATOR_RE.split(snapshot.title, maxsplit=1)[0].strip() or None


BUSINESS_NAME_STRATEGIES = (
    name_from_og_site_name,
    name_from_structured_data,
    name_from_h1,
    name_from_title,
)


def extract_business_name(snapshot: PageSnapshot) -> Optional[str]:
    return first_hit(BUSINESS_NAME_STRATEGIES, snapshot)


def _link_hrefs(snapshot: PageSnapshot) -> List[str]:
    return [str(a["href"]).lower() for a in snapshot.soup.find_all("a", href=True)]


def _is_booking_token(token: str) -> bool:
    if token == "book" or token.startswith(_BOOKING_ATTR_PREFIXES):
        return True
    return any(k in token for k in _BOOKING_ATTR_KEYWORDS)


def detect_booking(snapshot: PageSnapshot) -> bool:
    if any(k in href for href in _link_hrefs(snapshot) for k in _BOOKING_LINK_KEYWORDS):
        return True
    text = snapshot.visible_text.lower()
    if any(k in text for k in _BOOKING_TEXT_KEYWORDS):
        return True

    for tag in snapshot.soup.find_all(True):
        if any(_is_booking_token(token) for token in attr_haystack(tag, "class", "id").split()):
            return True
        if tag.name == "form":
            action = attr_haystack(tag, "action")
            if any(k in action for k in _BOOKING_ACTION_KEYWORDS):
                return True
    return False


def detect_whatsapp(snapshot: PageSnapshot) -> bool:
    if any(k in href for href in _link_hrefs(snapshot) for k in _WHATSAPP_KEYWORDS):
        return True
    return "whatsapp" in snapshot.visible_text.lower()


def detect_instagram(snapshot: PageSnapshot) -> bool:
    if any(k in href for href in _link_hrefs(snapshot) for k in _INSTAGRAM_KEYWORDS):
        return True
    return any(k in snapshot.visible_text.lower() for k in _INSTAGRAM_KEYWORDS)


def extract_maps_url(snapshot: PageSnapshot) -> Optional[str]:
    for iframe in snapshot.soup.find_all("iframe", src=True):
        src = str(iframe["src"])
        if any(k in src.lower() for k in _MAPS_KEYWORDS):
            return snapshot.absolute_url(src)
    for link in snapshot.soup.find_all("a", href=True):
        href = str(link["href"])
        if any(k in href.lower() for k in _MAPS_KEYWORDS):
            return snapshot.absolute_url(href)
    return None


def _in_page_chrome(tag: Tag) -> bool:
    """Return True when *tag* sits inside navigation, header, footer, menu or banners."""
    for node in [tag, *tag.parents]:
        # Theme classes on <body>/<main> ("has-header-image") describe the whole page
        if not isinstance(node, Tag) or node.name in _PAGE_ROOT_TAGS:
            break
        if node.name in _NOISE_TAGS:
            return True
        haystack = attr_haystack(node, "class", "id")
        if haystack and any(keyword in haystack for keyword in _NOISE_KEYWORDS):
            return True
    return False


def extract_content(snapshot: PageSnapshot) -> Optional[str]:
    """Paragraph text plus short H3 service names, capped for LLM grounding."""
    parts: List[str] = []
    for p in snapshot.soup.find_all("p"):
        text = _clean_text(p)
        if _PARAGRAPH_MIN <= len(text) <= _PARAGRAPH_MAX and not _in_page_chrome(p):
            parts.append(text)
    for h3 in snapshot.soup.find_all("h3"):
        text = _clean_text(h3)
        if _SERVICE_MIN <= len(text) <= _SERVICE_MAX and not _in_page_chrome(h3):
            parts.append(text)

    content = "\n".join(dedupe(parts))[:MAX_CONTENT_CHARS]
    return content or None


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

def _safe(heuristic: Callable[[PageSnapshot], T], snapshot: PageSnapshot, default: T) -> T:
    try:
        return heuristic(snapshot)
    except Exception as exc:
        logger.warning(
            "Heuristic %s failed for %s: %s", heuristic.__name__, snapshot.url, exc
        )
        return default


def extract_capture(snapshot: PageSnapshot) -> Capture:
    """Run every heuristic over *snapshot* and assemble a :class:`Capture`."""
    headings = _safe(collect_headings, snapshot, [])
    title, description = _safe(collect_meta, snapshot, ("", ""))
    h1_texts = [h.text for h in headings if h.tag == "h1"]
    h2_texts = dedupe(h.text for h in headings if h.tag == "h2")

    capture = Capture(
        page_url=snapshot.url,
        page_title=title,
        meta_description=description,
        h1_text=h1_texts[0] if h1_texts else "",
        h2_texts=h2_texts,
        headings=dedupe(headings),
        logo_url=_safe(extract_logo, snapshot, None),
        hero_image_url=_safe(extract_hero_image, snapshot, None),
        images=_safe(collect_images, snapshot, []),
        color_palette=_safe(extract_colors, snapshot, []),
        font_families=_safe(extract_fonts, snapshot, []),
        has_booking=_safe(detect_booking, snapshot, False),
        has_whatsapp=_safe(detect_whatsapp, snapshot, False),
        has_instagram=_safe(detect_instagram, snapshot, False),
        contact_emails=_safe(extract_emails, snapshot, []),
        contact_phones=_safe(extract_phones, snapshot, []),
        doctor_names=_safe(extract_doctor_names, snapshot, []),
        address=_safe(extract_address, snapshot, None),
        business_name=_safe(extract_business_name, snapshot, None),
        google_maps_url=_safe(extract_maps_url, snapshot, None),
        page_content=_safe(extract_content, snapshot, None),
    )
    logger.info(
        "Capture extracted",
        extra={
            "url": snapshot.url,
            "images": len(capture.images),
            "colors": len(capture.color_palette),
            "phones": len(capture.contact_phones),
        },
    )
    return capture


def extract(html: str, url: str) -> Capture:
    """Parse *html* captured from *url* and extract a :class:`Capture`."""
    return extract_capture(PageSnapshot(html, url))
