"""
Data models for scanned and imported contacts.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CONTACT_FIELDS = (
    "name",
    "email",
    "phone",
    "organization",
    "position",
    "address",
    "website",
)

# Recognizer language codes and their display names
LANGUAGES = {
    "eng": "English",
    "hin": "Hindi",
    "mar": "Marathi",
}
DEFAULT_LANGUAGE = "eng"


def normalize_language(code: Optional[str]) -> str:
    """Return ``code`` if it is a known language, otherwise English."""
    if code and code.strip().lower() in LANGUAGES:
        return code.strip().lower()
    return DEFAULT_LANGUAGE


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    # Single line, trimmed: every present value survives a CSV row
    value = " ".join(str(value).splitlines()).strip()
    return value or None


def _clamp_confidence(value: Any) -> int:
    try:
        confidence = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, confidence))


# =========================
# CONTACT RECORD
# =========================

@dataclass(frozen=True)
class ContactRecord:
    """Structured contact extracted from a card or imported from CSV.

    A field set to ``None`` was not detected. Values are trimmed and line
    breaks become spaces; blank strings are normalized to ``None``.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    organization: Optional[str] = None
    position: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    confidence: int = 0
    raw_text: str = ""

    def __post_init__(self):
        for name in CONTACT_FIELDS:
            object.__setattr__(self, name, _clean(getattr(self, name)))
        object.__setattr__(self, "confidence", _clamp_confidence(self.confidence))
        object.__setattr__(self, "raw_text", self.raw_text or "")

    def fields(self) -> Dict[str, Optional[str]]:
        """Contact fields only, without confidence and raw text."""
        return {name: getattr(self, name) for name in CONTACT_FIELDS}

    def has_data(self) -> bool:
        return any(self.fields().values())

    def as_imported(self) -> "ContactRecord":
        """Copy marked as user supplied: full confidence, no OCR text."""
        return replace(self, confidence=100, raw_text="")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            name: value for name, value in self.fields().items() if value is not None
        }
        data["confidence"] = self.confidence
        data["rawText"] = self.raw_text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactRecord":
        return cls(
            **{name: data.get(name) for name in CONTACT_FIELDS},
            confidence=data.get("confidence", 0),
            raw_text=data.get("rawText", data.get("raw_text", "")) or "",
        )


# =========================
# HISTORY ITEM
# =========================

@dataclass
class HistoryItem:
    """A stored scan or import: a contact plus where it came from."""

    id: str
    contact: ContactRecord
    image: str = ""
    language: str = DEFAULT_LANGUAGE
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    filename: str = ""

    @property
    def is_imported(self) -> bool:
        return not self.image

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted snapshot representation."""
        return {
            "id": self.id,
            "image": self.image,
            "contactInfo": self.contact.to_dict(),
            "language": self.language,
            "timestamp": self.timestamp.isoformat(),
            "filename": self.filename,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryItem":
        """Rebuild an item from its snapshot form.

        Raises:
            KeyError, TypeError, ValueError: if the entry is malformed
        """
        timestamp = datetime.fromisoformat(str(data["timestamp"]).replace("Z", "+00:00"))
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return cls(
            id=str(data["id"]),
            contact=ContactRecord.from_dict(data["contactInfo"]),
            image=data.get("image") or "",
            language=normalize_language(data.get("language")),
            timestamp=timestamp,
            filename=data.get("filename") or "",
        )
