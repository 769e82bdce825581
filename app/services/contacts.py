"""Contact heuristics: phones, emails, doctor/owner names, postal address."""

import re
from typing import List, Optional
from urllib.parse import parse_qs, unquote, urlparse

from app.services.page import PageSnapshot, dedupe, first_hit
from app.services.structured_data import iter_nodes, node_types

MAX_PHONES = 5
MAX_EMAILS = 5
MAX_NAMES = 5

# ---------------------------------------------------------------------------
# Phones (UAE)
# ---------------------------------------------------------------------------

_SEP = r"[\s\-.]?"
_UAE_PHONE_RE = re.compile(
    # +971 / 00971, optional (0), area or mobile prefix, 7 digits
    rf"(?:\+971|00971){_SEP}\(?0?\)?{_SEP}\d{{1,2}}{_SEP}\d{{3}}{_SEP}\d{{4}}"
    # local mobile: 050 123 4567
    rf"|\b05\d{_SEP}\d{{3}}{_SEP}\d{{4}}\b"
    # local landline: 04 123 4567
    rf"|\b0[2-9]{_SEP}\d{{3}}{_SEP}\d{{4}}\b"
    # toll free: 800 1234, 800 123 456
    rf"|\b800{_SEP}\d{{2,3}}{_SEP}\d{{2,4}}\b"
)
_NORMALISED_PHONE_RE = re.compile(r"^(?:(?:\+971|00971)\d{8,9}|0\d{8,9}|800\d{4,7})$")
_PHONE_STRIP_RE = re.compile(r"[\s\-.()]")


def normalise_phone(raw: str) -> Optional[str]:
    """Return *raw* as ``+971…`` (toll-free ``800…`` kept as is), or None if not a UAE number.

    ``04 123 4567``, ``+971 4 123 4567`` and ``00971 4 123 4567`` all give
    ``+97141234567``.
    """
    number = _PHONE_STRIP_RE.sub("", raw)
    if not _NORMALISED_PHONE_RE.match(number):
        return None
    if number.startswith("00971"):
        return "+" + number[2:]
    if number.startswith("0"):
        return "+971" + number[1:]
    return number


def extract_phones(snapshot: PageSnapshot) -> List[str]:
    candidates: List[str] = []

    # tel: links first, they are the most trustworthy source
    for link in snapshot.soup.find_all("a", href=True):
        href = str(link["href"]).strip()
        if href.lower().startswith("tel:"):
            number = normalise_phone(unquote(href[4:]))
            if number:
                candidates.append(number)

    for match in _UAE_PHONE_RE.finditer(snapshot.visible_text):
        number = normalise_phone(match.group(0))
        if number:
            candidates.append(number)

    return dedupe(candidates, MAX_PHONES)


# ---------------------------------------------------------------------------
# Emails
# ---------------------------------------------------------------------------

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")

# "logo@2x.png" and friends
_ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico", ".css", ".js")

_IGNORED_EMAIL_DOMAINS = (
    "sentry.io",
    "sentry-next.wixpress.com",
    "wixpress.com",
    "example.com",
    "domain.com",
    "yourdomain.com",
    "email.com",
    "godaddy.com",
    "wordpress.com",
    "w3.org",
    "schema.org",
)


def _is_plausible_email(email: str) -> bool:
    if email.endswith(_ASSET_SUFFIXES):
        return False
    domain = email.rsplit("@", 1)[-1]
    return not any(domain == d or domain.endswith("." + d) for d in _IGNORED_EMAIL_DOMAINS)


def extract_emails(snapshot: PageSnapshot) -> List[str]:
    candidates: List[str] = []

    for link in snapshot.soup.find_all("a", href=True):
        href = str(link["href"]).strip()
        if href.lower().startswith("mailto:"):
            address = unquote(href[7:].split("?", 1)[0]).strip()
            if _EMAIL_RE.fullmatch(address):
                candidates.append(address)

    candidates.extend(_EMAIL_RE.findall(snapshot.visible_text))

    emails = (e.lower().rstrip(".") for e in candidates)
    return dedupe((e for e in emails if _is_plausible_email(e)), MAX_EMAILS)


# ---------------------------------------------------------------------------
# Doctor / owner names
# ---------------------------------------------------------------------------

_DOCTOR_RE = re.compile(r"\bDr\.?\s+([A-Z][a-zA-Z'\-]+(?:[ \t]+[A-Z][a-zA-Z'\-]+){0,3})")
_PERSON_TYPES = {"person", "physician"}
_PERSON_KEYS = ("member", "physician")
_NAME_MIN_LEN = 5
_NAME_MAX_LEN = 60


def _names_from(value) -> List[str]:
    entries = value if isinstance(value, list) else [value]
    names = []
    for entry in entries:
        if isinstance(entry, dict) and isinstance(entry.get("name"), str):
            names.append(entry["name"])
        elif isinstance(entry, str):
            names.append(entry)
    return names


def extract_doctor_names(snapshot: PageSnapshot) -> List[str]:
    candidates: List[str] = []

    for node in iter_nodes(snapshot):
        if node_types(node) & _PERSON_TYPES and isinstance(node.get("name"), str):
            candidates.append(node["name"])
        for key in _PERSON_KEYS:
            if key in node:
                candidates.extend(_names_from(node[key]))

    for match in _DOCTOR_RE.finditer(snapshot.visible_text):
        candidates.append(f"Dr. {match.group(1)}")

    cleaned = (" ".join(name.split()) for name in candidates)
    return dedupe(
        (n for n in cleaned if _NAME_MIN_LEN <= len(n) <= _NAME_MAX_LEN),
        MAX_NAMES,
    )


# ---------------------------------------------------------------------------
# Address
# ---------------------------------------------------------------------------

_ADDRESS_PARTS = ("streetAddress", "addressLocality", "addressRegion", "postalCode", "addressCountry")

_UAE_PLACE_RE = re.compile(
    r"\b(?:dubai|abu dhabi|sharjah|ajman|ras al khaimah|fujairah|umm al quwain|al ain"
    r"|uae|u\.a\.e|united arab emirates)\b",
    re.IGNORECASE,
)
_ADDRESS_MIN_LEN = 15
_ADDRESS_MAX_LEN = 200


def _join_postal_address(address) -> Optional[str]:
    if isinstance(address, list):
        address = next((a for a in address if a), None)
    if isinstance(address, str):
        return address.strip() or None
    if not isinstance(address, dict):
        return None

    parts = []
    for key in _ADDRESS_PARTS:
        value = address.get(key)
        if isinstance(value, dict):
            value = value.get("name")
        if isinstance(value, str) and value.strip():
            parts.append(value.strip())
    return ", ".join(parts) or None


def address_from_structured_data(snapshot: PageSnapshot) -> Optional[str]:
    for node in iter_nodes(snapshot):
        if "address" in node:
            joined = _join_postal_address(node["address"])
            if joined:
                return joined
    return None


def address_from_text(snapshot: PageSnapshot) -> Optional[str]:
    for line in snapshot.text_lines:
        if _ADDRESS_MIN_LEN <= len(line) <= _ADDRESS_MAX_LEN and _UAE_PLACE_RE.search(line):
            return line
    return None


def address_from_map_embed(snapshot: PageSnapshot) -> Optional[str]:
    for iframe in snapshot.soup.find_all("iframe", src=True):
        src = str(iframe["src"])
        if "google." not in src or "maps" not in src:
            continue
        query = parse_qs(urlparse(src).query)
        for value in query.get("q", []):
            if value.strip():
                return unquote(value).strip()
    return None


ADDRESS_STRATEGIES = (
    address_from_structured_data,
    address_from_text,
    address_from_map_embed,
)


def extract_address(snapshot: PageSnapshot) -> Optional[str]:
    return first_hit(ADDRESS_STRATEGIES, snapshot)
