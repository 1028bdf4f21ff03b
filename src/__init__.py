"""
Source package initialization for the Business Card Scanner.
"""

from .models import ContactRecord, HistoryItem
from .parser import ContactParser
from .csv_codec import export_csv, parse_csv
from .vcard import render_vcard
from .store import RecordStore, JsonFileSnapshot, InMemorySnapshot
from .ocr import OCRExtractor
from .pipeline import CardScanPipeline

__all__ = [
    "ContactRecord",
    "HistoryItem",
    "ContactParser",
    "export_csv",
    "parse_csv",
    "render_vcard",
    "RecordStore",
    "JsonFileSnapshot",
    "InMemorySnapshot",
    "OCRExtractor",
    "CardScanPipeline",
]
