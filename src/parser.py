import logging
from typing import Iterable, List, Tuple

from .classifier import LineClassifier, split_lines
from .matchers import match_email, match_phone, match_website
from .models import ContactRecord

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 80
MEDIUM_CONFIDENCE = 60
KEY_FIELDS = ("name", "email", "phone")


def confidence_level(confidence: int) -> str:
    """Bucket a 0-100 confidence into high / medium / low."""
    if confidence >= HIGH_CONFIDENCE:
        return "high"
    if confidence >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def missing_key_fields(record: ContactRecord) -> List[str]:
    """Key fields that were not detected and deserve a manual review."""
    return [name for name in KEY_FIELDS if getattr(record, name) is None]


# =========================
# PARSER
# =========================

class ContactParser:
    def __init__(self, classifier: LineClassifier = None):
        self.classifier = classifier or LineClassifier()

    # =========================
    # PIPELINE API
    # =========================

    def parse(self, text: str, confidence: float = 0) -> ContactRecord:
        """Build a contact record from OCR text.

        Deterministic and never raises: on empty or unusable text every
        optional field is simply left unset.
        """
        text = text or ""
        lines = split_lines(text)
        assignment = self.classifier.classify(lines)

        contact = ContactRecord(
            name=assignment.name,
            email=match_email(text),
            phone=match_phone(text),
            organization=assignment.organization,
            position=assignment.position,
            address=assignment.address,
            website=match_website(text),
            confidence=confidence,
            raw_text=text,
        )

        logger.debug(
            f"Parsed {len(lines)} lines - email: {contact.email}, phone: {contact.phone}, "
            f"website: {contact.website}, confidence: {contact.confidence}"
        )
        return contact

    def parse_batch(self, items: Iterable[Tuple[str, float]]) -> List[ContactRecord]:
        """Parse several ``(text, confidence)`` pairs."""
        return [self.parse(text, confidence) for text, confidence in items]
