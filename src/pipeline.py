"""
Business Card Scan Pipeline
Runs one user action end to end: validation, OCR, extraction and storage,
plus CSV import/export and vCard download of stored contacts.
"""

import base64
import logging
import time
from typing import Dict, List, Optional, Tuple

from .csv_codec import MAX_IMPORT_RECORDS, export_csv, parse_csv
from .errors import EmptyResultError, FormatError, NotFound, ScannerError, StorageError
from .models import LANGUAGES, HistoryItem, normalize_language
from .ocr import ALLOWED_IMAGE_EXTENSIONS, MAX_IMAGE_SIZE, OCRExtractor, validate_upload
from .parser import ContactParser, confidence_level, missing_key_fields
from .store import RecordStore
from .vcard import render_vcard

logger = logging.getLogger(__name__)

SPREADSHEET_EXTENSIONS = {"xlsx", "xls"}
IMAGE_MIME_TYPES = {"png": "image/png", "jpg": "image/jpeg", "jpeg": "image/jpeg"}


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[1].lower() if filename and "." in filename else ""


def _millis() -> int:
    return int(time.time() * 1000)


def to_data_url(filename: str, data: bytes) -> str:
    """Encode an image as a data URL for storage alongside its contact."""
    mime = IMAGE_MIME_TYPES.get(_extension(filename), "application/octet-stream")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def describe_item(item: HistoryItem) -> Dict:
    """History item as returned to API callers."""
    data = item.to_dict()
    data["confidenceLevel"] = confidence_level(item.contact.confidence)
    data["missingFields"] = missing_key_fields(item.contact)
    data["isImported"] = item.is_imported
    return data


class CardScanPipeline:
    """Complete pipeline for scanning cards and managing the contact history."""

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        ocr: Optional[OCRExtractor] = None,
        parser: Optional[ContactParser] = None,
        allowed_extensions=ALLOWED_IMAGE_EXTENSIONS,
        max_image_size: int = MAX_IMAGE_SIZE,
        max_import_records: int = MAX_IMPORT_RECORDS,
    ):
        self.store = store if store is not None else RecordStore()
        self.ocr = ocr if ocr is not None else OCRExtractor()
        self.parser = parser or ContactParser()
        self.allowed_extensions = allowed_extensions
        self.max_image_size = max_image_size
        self.max_import_records = max_import_records
        self.progress = 0

        logger.info("CardScanPipeline initialized")

    def _on_progress(self, value: int) -> None:
        # Progress never goes backwards within one recognition
        self.progress = max(self.progress, min(100, int(value)))

    # ======================================================
    # SCAN
    # ======================================================

    def process_image(self, filename: str, data: bytes, language: str = "eng") -> Dict:
        """
        Scan a business card image and store the extracted contact.

        Args:
            filename: Uploaded file name
            data: Image bytes
            language: Recognizer language code

        Returns:
            Result dictionary; ``success`` is False with ``error`` and
            ``error_type`` set when validation or recognition failed
        """
        start_time = time.time()
        language = normalize_language(language)

        try:
            validate_upload(filename, data, self.allowed_extensions, self.max_image_size)

            self.progress = 0
            logger.info(f"Processing image: {filename} ({language})")
            ocr_result = self.ocr.recognize(data, language, progress_callback=self._on_progress)

            contact = self.parser.parse(ocr_result.text, ocr_result.confidence)
            try:
                item = self.store.add(contact, to_data_url(filename, data), language)
            except OSError as e:
                logger.error(f"Could not save scan of {filename}: {e}", exc_info=True)
                raise StorageError("Could not save the scanned contact. Please try again.") from e
            self.store.select(item.id)

        except ScannerError as e:
            logger.warning(f"Scan of {filename} failed: {e.message}")
            return {
                "success": False,
                "error": e.message,
                "error_type": type(e).__name__,
                "image": filename,
            }

        finally:
            self.progress = 0

        total_time = time.time() - start_time
        logger.info(f"Total processing time: {total_time:.2f}s")

        return {
            "success": True,
            "item": describe_item(item),
            "processing_time_ms": int(total_time * 1000),
        }

    def process_text(self, text: str, confidence: float = 100) -> Dict:
        """Extract a contact from already recognized text without storing it."""
        contact = self.parser.parse(text, confidence)
        return {
            "success": True,
            "contact_data": contact.to_dict(),
            "confidence_level": confidence_level(contact.confidence),
            "missing_fields": missing_key_fields(contact),
        }

    # ======================================================
    # IMPORT / EXPORT
    # ======================================================

    def import_csv(self, filename: str, data: bytes, language: str = "eng") -> List[HistoryItem]:
        """
        Import contacts from an uploaded CSV file.

        Either the whole file is added to the history or nothing is.

        Raises:
            FormatError: wrong extension, undecodable or malformed file
            EmptyResultError: no usable rows
            TooManyRecordsError: more rows than allowed
            StorageError: the history snapshot could not be written
        """
        extension = _extension(filename)
        if extension in SPREADSHEET_EXTENSIONS:
            raise FormatError("Excel format is not supported. Please use CSV format.")
        if extension != "csv":
            raise FormatError("Unsupported file format. Please use CSV files.")

        try:
            content = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise FormatError("CSV file must be UTF-8 encoded.") from e

        records = parse_csv(content, max_records=self.max_import_records)
        try:
            items = self.store.bulk_add(records, language)
        except OSError as e:
            logger.error(f"Could not save contacts imported from {filename}: {e}", exc_info=True)
            raise StorageError("Could not save the imported contacts. Please try again.") from e
        if items:
            self.store.select(items[0].id)

        logger.info(f"Imported {len(items)} contacts from {filename}")
        return items

    def export_csv(self) -> Tuple[str, bytes]:
        """Render the whole history as a CSV download."""
        records = self.store.records()
        if not records:
            raise EmptyResultError("No contacts to export.")
        return f"contacts_{_millis()}.csv", export_csv(records).encode("utf-8")

    def _require(self, item_id: str) -> HistoryItem:
        item = self.store.get(item_id)
        if item is None:
            raise NotFound(item_id)
        return item

    def export_item_csv(self, item_id: str) -> Tuple[str, bytes]:
        """Render a single stored contact as a CSV download."""
        item = self._require(item_id)
        return f"contact_{_millis()}.csv", export_csv([item.contact]).encode("utf-8")

    def export_item_vcard(self, item_id: str) -> Tuple[str, bytes]:
        """Render a single stored contact as a vCard download."""
        item = self._require(item_id)
        return f"contact_{_millis()}.vcf", render_vcard(item.contact).encode("utf-8")

    # ======================================================
    # STATUS
    # ======================================================

    def get_status(self) -> Dict:
        """Get pipeline status information."""
        return {
            "ocr_engine": "easyocr",
            "languages": LANGUAGES,
            "history_size": len(self.store),
            "max_import_records": self.max_import_records,
            "progress": self.progress,
        }
