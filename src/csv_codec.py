"""
CSV import and export of contact records.

Export always writes the fixed column set below with every value quoted.
Import is lenient about column names and order but strict about the
overall shape of the file.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .errors import EmptyResultError, FormatError, TooManyRecordsError
from .models import ContactRecord

logger = logging.getLogger(__name__)

CSV_HEADER = "Name,Organization,Position,Email,Phone,Website,Address"
EXPORT_FIELDS = ("name", "organization", "position", "email", "phone", "website", "address")

IDENTITY_COLUMNS = ("name", "email", "phone")
MAX_IMPORT_RECORDS = 50

# Header token (lower-cased) -> ContactRecord field
COLUMN_SYNONYMS: Dict[str, str] = {
    "name": "name",
    "full name": "name",
    "fullname": "name",
    "organization": "organization",
    "company": "organization",
    "position": "position",
    "title": "position",
    "job title": "position",
    "email": "email",
    "phone": "phone",
    "telephone": "phone",
    "mobile": "phone",
    "website": "website",
    "url": "website",
    "address": "address",
}


# =========================
# EXPORT
# =========================

def _quote(value: Optional[str]) -> str:
    return '"' + (value or "").replace('"', '""') + '"'


def export_row(record: ContactRecord) -> str:
    return ",".join(_quote(getattr(record, name)) for name in EXPORT_FIELDS)


def export_csv(records: Iterable[ContactRecord]) -> str:
    """Render records as CSV text, header first, in the given order."""
    rows = [export_row(record) for record in records]
    return CSV_HEADER + "\n" + "\n".join(rows)


# =========================
# IMPORT
# =========================

def split_csv_line(line: str) -> List[str]:
    """Split one CSV line, honouring double-quoted fields.

    ``""`` inside a field yields a literal quote, commas inside quotes are
    kept, and any other quote toggles quoted mode.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def _row_to_record(header: List[str], values: List[str]) -> Optional[ContactRecord]:
    data = {}
    for column, raw in zip(header, values):
        value = raw.strip()
        field_name = COLUMN_SYNONYMS.get(column)
        if value and field_name:
            data[field_name] = value

    if not data:
        return None
    return ContactRecord(**data, confidence=100, raw_text="")


def parse_csv(content: str, max_records: int = MAX_IMPORT_RECORDS) -> List[ContactRecord]:
    """Parse CSV text into contact records.

    Args:
        content: Decoded CSV text
        max_records: Upper bound on the number of imported contacts

    Returns:
        Records in file order, each with confidence 100 and no raw text

    Raises:
        FormatError: header missing or without an identity column
        EmptyResultError: no row produced a contact
        TooManyRecordsError: more than ``max_records`` contacts
    """
    lines = [line.rstrip("\r") for line in (content or "").split("\n")]
    if len(lines) < 2:
        raise FormatError("CSV file must contain a header row and at least one data row.")

    header = [column.strip().lower() for column in lines[0].lstrip("\ufeff").split(",")]
    if not any(column in header for column in IDENTITY_COLUMNS):
        raise FormatError(
            "CSV file must contain at least one of these columns: Name, Email, Phone."
        )

    records = []
    skipped = 0
    for line in lines[1:]:
        if not line.strip():
            continue

        values = split_csv_line(line)
        if len(values) != len(header):
            skipped += 1
            continue

        record = _row_to_record(header, values)
        if record is not None:
            records.append(record)

    if skipped:
        logger.info(f"Skipped {skipped} malformed CSV rows")

    if not records:
        raise EmptyResultError()
    if len(records) > max_records:
        raise TooManyRecordsError(len(records), max_records)

    logger.info(f"Parsed {len(records)} contacts from CSV")
    return records
