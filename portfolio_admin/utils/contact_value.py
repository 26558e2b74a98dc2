"""
Classifies free-text contact values so they can be rendered as the right kind of link.
"""

import re
from enum import Enum

URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"^\+?[\d\s().-]{7,}$", re.ASCII)


class ContactValueKind(str, Enum):
    URL = "url"
    EMAIL = "email"
    PHONE = "phone"
    TEXT = "text"


def classify_contact_value(value: str | None) -> ContactValueKind:
    """
    Classifies a contact value. Checks run in priority order (URL, email,
    phone) and anything else, including blank input, is plain text.
    """
    raw = (value or "").strip()
    if not raw:
        return ContactValueKind.TEXT
    if URL_PATTERN.match(raw):
        return ContactValueKind.URL
    if "@" in raw:
        return ContactValueKind.EMAIL
    if PHONE_PATTERN.match(raw):
        return ContactValueKind.PHONE
    return ContactValueKind.TEXT


def contact_href(value: str | None) -> str | None:
    """Returns the link target for a contact value, or None for plain text."""
    raw = (value or "").strip()
    kind = classify_contact_value(raw)
    if kind is ContactValueKind.URL:
        return raw
    if kind is ContactValueKind.EMAIL:
        return f"mailto:{raw}"
    if kind is ContactValueKind.PHONE:
        return "tel:" + re.sub(r"[^+\d]", "", raw)
    return None
