"""Image heuristics: image inventory, hero image cascade, logo cascade."""

import re
from typing import Iterator, List, Optional

from bs4 import Tag

from app.services.page import PageSnapshot, attr_haystack, dedupe, first_hit

_CSS_URL_RE = re.compile(r"""url\(\s*["']?([^"')]+?)["']?\s*\)""")
_IMG_SRC_ATTRS = ("data-ps-src", "src", "data-src", "data-lazy-src")

_DECORATIVE_KEYWORDS = ("logo", "icon", "spacer")
_HERO_KEYWORDS = ("hero", "banner", "slider", "carousel", "slideshow", "masthead", "jumbotron", "swiper")
_LOGO_CONTAINER_SELECTOR = "header, nav, [class*='header'], [id*='header'], [class*='nav'], [id*='nav']"

# Anything smaller than this on either side is decoration, not content
MIN_IMAGE_SIDE = 100
HERO_MIN_WIDTH = 400
HERO_MIN_HEIGHT = 200
# Number of leading content sections searched for a hero-sized image
HERO_SECTION_LIMIT = 3


def image_src(snapshot: PageSnapshot, img: Tag) -> Optional[str]:
    """Return the first usable absolute URL among an ``<img>``'s source attributes."""
    for attr in _IMG_SRC_ATTRS:
        url = snapshot.absolute_url(img.get(attr))
        if url:
            return url
    return None


def background_urls(snapshot: PageSnapshot, tag: Tag) -> List[str]:
    value = snapshot.style(tag, "background-image")
    if not value or value == "none":
        return []
    urls = (snapshot.absolute_url(raw) for raw in _CSS_URL_RE.findall(value))
    return [url for url in urls if url]


def collect_images(snapshot: PageSnapshot) -> List[str]:
    """All ``<img>`` sources plus CSS background images, deduplicated."""
    urls: List[str] = []
    for img in snapshot.soup.find_all("img"):
        src = image_src(snapshot, img)
        if src:
            urls.append(src)
    for tag in snapshot.soup.find_all(True):
        urls.extend(background_urls(snapshot, tag))
    return dedupe(urls)


# ---------------------------------------------------------------------------
# Hero image
# ---------------------------------------------------------------------------

def _is_vector_or_inline(url: str) -> bool:
    lowered = url.lower()
    return lowered.startswith("data:") or lowered.split("?", 1)[0].endswith(".svg")


def _is_decorative(snapshot: PageSnapshot, img: Tag, url: str) -> bool:
    if _is_vector_or_inline(url):
        return True
    haystack = url.lower() + " " + attr_haystack(img, "alt", "class", "id")
    if any(keyword in haystack for keyword in _DECORATIVE_KEYWORDS):
        return True
    width, height = snapshot.image_size(img)
    # Unknown sizes (0) are not proof of decoration
    return (0 < width < MIN_IMAGE_SIDE) or (0 < height < MIN_IMAGE_SIDE)


def _is_hero_sized(snapshot: PageSnapshot, img: Tag) -> bool:
    width, height = snapshot.image_size(img)
    return width >= HERO_MIN_WIDTH and height >= HERO_MIN_HEIGHT


def _size_unknown(snapshot: PageSnapshot, img: Tag) -> bool:
    return snapshot.image_size(img) == (0, 0)


def _could_be_hero(snapshot: PageSnapshot, img: Tag) -> bool:
    """Hero-sized, or unmeasured (HTTP captures) and so taken in document order."""
    return _is_hero_sized(snapshot, img) or _size_unknown(snapshot, img)


def _content_images(snapshot: PageSnapshot, root: Tag) -> Iterator[tuple]:
    """Yield ``(img, url)`` for every non-decorative image under *root*."""
    for img in root.find_all("img"):
        url = image_src(snapshot, img)
        if url and not _is_decorative(snapshot, img, url):
            yield img, url


def _hero_containers(snapshot: PageSnapshot) -> Iterator[Tag]:
    for tag in snapshot.soup.find_all(True):
        haystack = attr_haystack(tag, "class", "id")
        if haystack and any(keyword in haystack for keyword in _HERO_KEYWORDS):
            yield tag


def hero_from_container(snapshot: PageSnapshot) -> Optional[str]:
    for container in _hero_containers(snapshot):
        for img, url in _content_images(snapshot, container):
            if _could_be_hero(snapshot, img):
                return url
        for url in background_urls(snapshot, container):
            if not _is_vector_or_inline(url):
                return url
    return None


def _leading_sections(snapshot: PageSnapshot) -> List[Tag]:
    sections = snapshot.soup.find_all("section", limit=HERO_SECTION_LIMIT)
    if sections:
        return sections
    root = snapshot.soup.find("main") or snapshot.soup.body
    if root is None:
        return []
    return root.find_all(True, recursive=False, limit=HERO_SECTION_LIMIT)


def hero_from_leading_sections(snapshot: PageSnapshot) -> Optional[str]:
    for section in _leading_sections(snapshot):
        for img, url in _content_images(snapshot, section):
            if _could_be_hero(snapshot, img):
                return url
    return None


def hero_from_largest_image(snapshot: PageSnapshot) -> Optional[str]:
    best_url, best_area, first_url = None, 0, None
    for img, url in _content_images(snapshot, snapshot.soup):
        first_url = first_url or url
        width, height = snapshot.image_size(img)
        if width * height > best_area:
            best_url, best_area = url, width * height
    # No image was measured: fall back to document order
    return best_url or first_url


def og_image(snapshot: PageSnapshot) -> Optional[str]:
    return snapshot.absolute_url(snapshot.meta_content("og:image"))


HERO_STRATEGIES = (
    hero_from_container,
    hero_from_leading_sections,
    hero_from_largest_image,
    og_image,
)


def extract_hero_image(snapshot: PageSnapshot) -> Optional[str]:
    return first_hit(HERO_STRATEGIES, snapshot)


# ---------------------------------------------------------------------------
# Logo
# ---------------------------------------------------------------------------

def _logo_in(snapshot: PageSnapshot, root: Tag) -> Optional[str]:
    for img in root.find_all("img"):
        url = image_src(snapshot, img)
        if not url:
            continue
        haystack = url.lower() + " " + attr_haystack(img, "alt", "class", "id")
        if "logo" in haystack:
            return url
    return None


def logo_from_header(snapshot: PageSnapshot) -> Optional[str]:
    for container in snapshot.soup.select(_LOGO_CONTAINER_SELECTOR):
        url = _logo_in(snapshot, container)
        if url:
            return url
    return None


def logo_anywhere(snapshot: PageSnapshot) -> Optional[str]:
    return _logo_in(snapshot, snapshot.soup)


LOGO_STRATEGIES = (
    logo_from_header,
    logo_anywhere,
    og_image,
)


def extract_logo(snapshot: PageSnapshot) -> Optional[str]:
    return first_hit(LOGO_STRATEGIES, snapshot)
