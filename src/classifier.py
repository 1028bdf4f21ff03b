"""
Line classifier for business card text.

Assigns OCR lines to name, organization, position and address using
position on the card and exclusion of contact-shaped lines. Single
greedy pass per field, no backtracking.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from .matchers import is_contact_shaped, match_address_strict

logger = logging.getLogger(__name__)

LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")

MIN_FIELD_LENGTH = 2
MAX_FIELD_LENGTH = 50
MIN_ADDRESS_LENGTH = 15
# Organization is only looked for in the lines right below the first one
ORGANIZATION_WINDOW = 5


@dataclass
class LineAssignment:
    name: Optional[str] = None
    organization: Optional[str] = None
    position: Optional[str] = None
    address: Optional[str] = None


def split_lines(text: str) -> List[str]:
    """Split raw text into trimmed, non-empty lines, keeping their order."""
    if not text:
        return []
    return [line.strip() for line in LINE_BREAK_PATTERN.split(text) if line.strip()]


def _is_field_candidate(line: str) -> bool:
    return (
        not is_contact_shaped(line)
        and MIN_FIELD_LENGTH < len(line) < MAX_FIELD_LENGTH
    )


class LineClassifier:
    """Heuristic assignment of card lines to contact fields."""

    def classify(self, lines: List[str]) -> LineAssignment:
        lines = [line.strip() for line in lines if line and line.strip()]
        result = LineAssignment()
        claimed: Set[int] = set()

        name_index = self._find_name(lines)
        if name_index is not None:
            result.name = lines[name_index]
            claimed.add(name_index)

        org_index = self._find_organization(lines, result.name)
        if org_index is not None:
            result.organization = lines[org_index]
            claimed.add(org_index)

        if result.name:
            result.position = self._find_position(lines, result, claimed)

        result.address = self._find_address(lines, result)

        logger.debug(
            f"Classified {len(lines)} lines - name: {result.name!r}, "
            f"organization: {result.organization!r}, position: {result.position!r}"
        )
        return result

    # =========================
    # FIELDS
    # =========================

    def _find_name(self, lines: List[str]) -> Optional[int]:
        for i, line in enumerate(lines):
            if _is_field_candidate(line):
                return i
        return None

    def _find_organization(self, lines: List[str], name: Optional[str]) -> Optional[int]:
        for i in range(1, min(ORGANIZATION_WINDOW, len(lines))):
            line = lines[i]
            if _is_field_candidate(line) and line != name:
                return i
        return None

    def _find_position(
        self, lines: List[str], result: LineAssignment, claimed: Set[int]
    ) -> Optional[str]:
        """Take the first unclaimed line printed below the name."""
        name_index = next((i for i, line in enumerate(lines) if result.name in line), None)
        if name_index is None:
            return None

        i = name_index + 1
        while i < len(lines) and i in claimed:
            i += 1
        if i >= len(lines):
            return None

        candidate = lines[i]
        if (
            not is_contact_shaped(candidate)
            and candidate != result.organization
            and len(candidate) < MAX_FIELD_LENGTH
        ):
            return candidate
        return None

    def _find_address(self, lines: List[str], result: LineAssignment) -> Optional[str]:
        for line in lines:
            if match_address_strict(line):
                return line

        taken = {result.name, result.organization, result.position}
        longest = ""
        for line in lines:
            if (
                not is_contact_shaped(line)
                and line not in taken
                and len(line) > len(longest)
                and len(line) > MIN_ADDRESS_LENGTH
            ):
                longest = line
        return longest or None


def classify_lines(lines: List[str]) -> LineAssignment:
    """Classify already split lines. See :class:`LineClassifier`."""
    return LineClassifier().classify(lines)
