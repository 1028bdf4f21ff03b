"""
Record store for scanned and imported contacts.

Holds the ordered history (newest first) and writes it through to a
persistence backend after every successful mutation.
"""

import json
import logging
import os
import tempfile
import threading
import time
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .models import ContactRecord, HistoryItem, normalize_language

logger = logging.getLogger(__name__)


# =========================
# PERSISTENCE
# =========================

class InMemorySnapshot:
    """Snapshot backend that lives only as long as the process."""

    def __init__(self, entries: Optional[List[Dict[str, Any]]] = None):
        self.entries = list(entries or [])

    def load(self) -> List[Dict[str, Any]]:
        return list(self.entries)

    def save(self, entries: List[Dict[str, Any]]) -> None:
        self.entries = list(entries)


class JsonFileSnapshot:
    """Snapshot backend storing the history as a JSON array on disk."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load history from {self.path}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Ignoring history snapshot {self.path}: expected a list")
            return []
        return data

    def save(self, entries: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


# =========================
# STORE
# =========================

class RecordStore:
    """Ordered, id-addressed collection of history items.

    Operations referring to an unknown id are silent no-ops. Every
    mutation is persisted before the call returns.
    """

    def __init__(self, persistence=None):
        self.persistence = persistence if persistence is not None else InMemorySnapshot()
        self._selected_id: Optional[str] = None
        self._lock = threading.RLock()
        self._items: List[HistoryItem] = self._load()

    def _load(self) -> List[HistoryItem]:
        try:
            entries = self.persistence.load()
            items = [HistoryItem.from_dict(entry) for entry in entries]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to load history, starting empty: {e}")
            return []

        logger.info(f"Loaded {len(items)} history items")
        return items

    def _commit(self, items: List[HistoryItem]) -> None:
        # Collection only changes after a successful write
        self.persistence.save([item.to_dict() for item in items])
        self._items = items

    def _index(self, item_id: str) -> Optional[int]:
        for i, item in enumerate(self._items):
            if item.id == item_id:
                return i
        return None

    # =========================
    # QUERIES
    # =========================

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[HistoryItem]:
        return iter(self.items())

    def items(self) -> List[HistoryItem]:
        with self._lock:
            return list(self._items)

    def records(self) -> List[ContactRecord]:
        with self._lock:
            return [item.contact for item in self._items]

    def get(self, item_id: str) -> Optional[HistoryItem]:
        with self._lock:
            index = self._index(item_id)
            return self._items[index] if index is not None else None

    @property
    def selected(self) -> Optional[HistoryItem]:
        with self._lock:
            return self.get(self._selected_id) if self._selected_id else None

    def select(self, item_id: str) -> Optional[HistoryItem]:
        with self._lock:
            item = self.get(item_id)
            if item is not None:
                self._selected_id = item.id
            return item

    # =========================
    # MUTATIONS
    # =========================

    def add(self, record: ContactRecord, image: str, language: str) -> HistoryItem:
        """Prepend a freshly scanned contact."""
        with self._lock:
            millis = int(time.time() * 1000)
            item = HistoryItem(
                id=str(uuid.uuid4()),
                contact=record,
                image=image or "",
                language=normalize_language(language),
                timestamp=datetime.now(timezone.utc),
                filename=f"business-card-{millis}.jpg",
            )
            self._commit([item] + self._items)

        logger.info(f"Added history item {item.id}")
        return item

    def bulk_add(self, records: List[ContactRecord], language: str) -> List[HistoryItem]:
        """Prepend imported contacts as one block, keeping their order."""
        with self._lock:
            millis = int(time.time() * 1000)
            now = datetime.now(timezone.utc)
            language = normalize_language(language)
            new_items = [
                HistoryItem(
                    id=f"imported-{uuid.uuid4()}",
                    contact=record.as_imported(),
                    image="",
                    language=language,
                    timestamp=now,
                    filename=f"imported-contact-{millis}.csv",
                )
                for record in records
            ]
            if not new_items:
                return []

            self._commit(new_items + self._items)

        logger.info(f"Imported {len(new_items)} contacts into history")
        return new_items

    def edit(self, item_id: str, record: ContactRecord) -> Optional[HistoryItem]:
        """Replace the contact of an item. Returns None if the id is unknown."""
        with self._lock:
            index = self._index(item_id)
            if index is None:
                logger.debug(f"Edit ignored, no history item {item_id}")
                return None

            items = list(self._items)
            items[index] = replace(items[index], contact=record)
            self._commit(items)
            return items[index]

    def delete(self, item_id: str) -> bool:
        """Remove an item. Returns False if the id is unknown."""
        with self._lock:
            index = self._index(item_id)
            if index is None:
                logger.debug(f"Delete ignored, no history item {item_id}")
                return False

            self._commit(self._items[:index] + self._items[index + 1:])
            if self._selected_id == item_id:
                self._selected_id = None

        logger.info(f"Deleted history item {item_id}")
        return True
