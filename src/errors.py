"""
Error taxonomy for the business card scanner.

Every error carries a human readable ``message`` that callers can show
to the user as-is. None of them are fatal: the store is left unchanged
whenever one is raised.
"""

from typing import Optional


class ScannerError(Exception):
    """Base class for all recoverable scanner errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ScannerError):
    """Uploaded file has the wrong type, is empty or too large."""


class RecognitionError(ScannerError):
    """The OCR engine failed to recognize the image."""


class FormatError(ScannerError):
    """Imported file has the wrong extension or an invalid structure."""


class EmptyResultError(ScannerError):
    """Import finished without producing any usable contact."""

    def __init__(self, message: str = "No valid contacts found in the file."):
        super().__init__(message)
        self.count = 0


class TooManyRecordsError(ScannerError):
    """Import produced more contacts than the allowed maximum."""

    def __init__(self, count: int, limit: int, message: Optional[str] = None):
        super().__init__(
            message or f"File contains {count} contacts. Maximum allowed is {limit}."
        )
        self.count = count
        self.limit = limit


class NotFound(ScannerError):
    """No history item exists with the given id."""

    def __init__(self, item_id: str):
        super().__init__(f"History item not found: {item_id}")
        self.item_id = item_id


class StorageError(ScannerError):
    """The contact history could not be written."""
