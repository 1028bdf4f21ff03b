"""
Field matchers for OCR text.

Stateless pattern detectors for email, phone, website and address
tokens. Each matcher returns the first match in document order, or
``None`` when nothing matches; malformed input is never an error.
"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

# Optional country code, optional (xxx) group, 3+3+4 digits, or a bare 10-digit run
PHONE_PATTERN = re.compile(
    r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}|\d{10}"
)

WEBSITE_PATTERN = re.compile(
    r"(?:https?://)?(?:www\.)?[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)+(?:/\S*)?",
    re.IGNORECASE,
)

STREET_ADDRESS_PATTERN = re.compile(
    r"\d+\s+[A-Za-z\s]+,?\s*[A-Za-z\s]+,?\s*[A-Za-z]{2}\s*\d{5}",
    re.IGNORECASE,
)
POSTAL_CODE_PATTERN = re.compile(r"\d{6}")


def _first(pattern: re.Pattern, text) -> Optional[str]:
    if not isinstance(text, str):
        return None
    m = pattern.search(text)
    return m.group(0) if m else None


def match_email(text: str) -> Optional[str]:
    """Extract the first email address."""
    return _first(EMAIL_PATTERN, text)


def match_phone(text: str) -> Optional[str]:
    """Extract the first phone number. No region or checksum validation."""
    return _first(PHONE_PATTERN, text)


def _token_around(text: str, start: int, end: int) -> str:
    while start > 0 and not text[start - 1].isspace():
        start -= 1
    while end < len(text) and not text[end].isspace():
        end += 1
    return text[start:end]


def match_website(text: str) -> Optional[str]:
    """Extract the first URL that is not part of an email address.

    The website pattern also matches both halves of ``jane.doe@acme.com``,
    so candidates whose surrounding token holds an ``@`` are skipped.
    """
    if not isinstance(text, str):
        return None

    for m in WEBSITE_PATTERN.finditer(text):
        candidate = m.group(0)
        if "@" in candidate or "@" in _token_around(text, m.start(), m.end()):
            continue
        return candidate
    return None


def match_address_strict(line: str) -> bool:
    """Check for a street address shape or a 6-digit postal code."""
    if not isinstance(line, str):
        return False
    return bool(STREET_ADDRESS_PATTERN.search(line) or POSTAL_CODE_PATTERN.search(line))


def is_contact_shaped(line: str) -> bool:
    """True if the line holds an email, phone number or website."""
    return (
        match_email(line) is not None
        or match_phone(line) is not None
        or match_website(line) is not None
    )
