"""
Tests for RecordStore and its persistence backends.
"""

import json
from datetime import datetime, timezone

import pytest

from src.models import ContactRecord, HistoryItem
from src.store import InMemorySnapshot, JsonFileSnapshot, RecordStore


@pytest.fixture
def store():
    return RecordStore(InMemorySnapshot())


@pytest.fixture
def record():
    return ContactRecord(name="Jane Doe", email="jane@acme.com", confidence=88, raw_text="Jane Doe\njane@acme.com")


class TestRecordStore:
    """Test cases for RecordStore."""

    def test_add_prepends(self, store, record):
        first = store.add(record, "data:image/png;base64,AAA", "eng")
        second = store.add(ContactRecord(name="Bob"), "data:image/png;base64,BBB", "hin")

        assert [item.id for item in store.items()] == [second.id, first.id]
        assert first.id != second.id
        assert second.language == "hin"
        assert first.filename.startswith("business-card-")

    def test_add_unknown_language_falls_back(self, store, record):
        item = store.add(record, "", "fra")

        assert item.language == "eng"

    def test_bulk_add_block_order(self, store, record):
        existing = store.add(record, "img", "eng")
        imported = [
            ContactRecord(name="Ann", confidence=10, raw_text="x"),
            ContactRecord(name="Cy"),
        ]

        items = store.bulk_add(imported, "mar")

        assert [item.contact.name for item in store.items()] == ["Ann", "Cy", "Jane Doe"]
        assert store.items()[-1].id == existing.id
        for item in items:
            assert item.image == ""
            assert item.contact.confidence == 100
            assert item.contact.raw_text == ""
            assert item.language == "mar"

    def test_bulk_add_nothing(self, store):
        assert store.bulk_add([], "eng") == []
        assert len(store) == 0

    def test_edit_replaces_contact(self, store, record):
        item = store.add(record, "img", "eng")
        updated = ContactRecord(name="Jane Smith", confidence=88)

        result = store.edit(item.id, updated)

        assert result.contact == updated
        assert store.get(item.id).contact == updated
        assert len(store) == 1

    def test_edit_is_idempotent(self, store, record):
        item = store.add(record, "img", "eng")
        updated = ContactRecord(name="Jane Smith")

        store.edit(item.id, updated)
        once = [i.to_dict() for i in store.items()]
        store.edit(item.id, updated)

        assert [i.to_dict() for i in store.items()] == once

    def test_edit_does_not_alias_returned_items(self, store, record):
        item = store.add(record, "img", "eng")

        store.edit(item.id, ContactRecord(name="Other"))

        assert item.contact == record

    def test_edit_unknown_id(self, store, record):
        store.add(record, "img", "eng")

        assert store.edit("missing", ContactRecord(name="X")) is None
        assert store.records() == [record]

    def test_delete(self, store, record):
        item = store.add(record, "img", "eng")

        assert store.delete(item.id) is True
        assert len(store) == 0

    def test_delete_unknown_id_keeps_order(self, store, record):
        store.add(record, "img", "eng")
        store.add(ContactRecord(name="Bob"), "img", "eng")
        before = [item.id for item in store.items()]

        assert store.delete("missing") is False
        assert [item.id for item in store.items()] == before

    def test_select_and_delete_clears_selection(self, store, record):
        item = store.add(record, "img", "eng")
        other = store.add(ContactRecord(name="Bob"), "img", "eng")

        assert store.select(item.id).id == item.id
        store.delete(other.id)
        assert store.selected.id == item.id

        store.delete(item.id)
        assert store.selected is None

    def test_select_unknown_id(self, store):
        assert store.select("missing") is None
        assert store.selected is None

    def test_failed_write_leaves_collection_unchanged(self, record):
        class BrokenSnapshot(InMemorySnapshot):
            def save(self, entries):
                raise OSError("disk full")

        store = RecordStore(BrokenSnapshot())

        with pytest.raises(OSError):
            store.add(record, "img", "eng")
        assert len(store) == 0


class TestPersistence:
    """Test cases for snapshot persistence."""

    def test_every_mutation_is_written(self, record):
        snapshot = InMemorySnapshot()
        store = RecordStore(snapshot)

        item = store.add(record, "img", "eng")
        assert [e["id"] for e in snapshot.entries] == [item.id]

        store.edit(item.id, ContactRecord(name="Changed"))
        assert snapshot.entries[0]["contactInfo"]["name"] == "Changed"

        store.delete(item.id)
        assert snapshot.entries == []

    def test_json_file_round_trip(self, tmp_path, record):
        path = tmp_path / "history.json"
        store = RecordStore(JsonFileSnapshot(path))
        item = store.add(record, "data:image/png;base64,AAA", "hin")
        store.bulk_add([ContactRecord(name="Bob")], "eng")

        restored = RecordStore(JsonFileSnapshot(path))

        assert [i.id for i in restored.items()] == [i.id for i in store.items()]
        restored_item = restored.get(item.id)
        assert restored_item.contact == record
        assert restored_item.timestamp == item.timestamp
        assert isinstance(restored_item.timestamp, datetime)
        assert restored_item.language == "hin"

    def test_snapshot_format(self, tmp_path, record):
        path = tmp_path / "history.json"
        store = RecordStore(JsonFileSnapshot(path))
        store.add(record, "img", "eng")

        data = json.loads(path.read_text(encoding="utf-8"))

        assert isinstance(data, list)
        assert set(data[0]) == {"id", "image", "contactInfo", "language", "timestamp", "filename"}
        assert isinstance(data[0]["timestamp"], str)

    def test_missing_file_is_empty(self, tmp_path):
        store = RecordStore(JsonFileSnapshot(tmp_path / "nope.json"))

        assert len(store) == 0

    @pytest.mark.parametrize("content", [
        "not json",
        '{"id": "x"}',
        '[{"id": "x"}]',
        '[{"id": "x", "contactInfo": {}, "timestamp": "yesterday"}]',
    ])
    def test_malformed_snapshot_is_empty(self, tmp_path, content):
        path = tmp_path / "history.json"
        path.write_text(content, encoding="utf-8")

        store = RecordStore(JsonFileSnapshot(path))

        assert len(store) == 0

    def test_zulu_timestamp_is_restored(self):
        entry = {
            "id": "1700000000000",
            "image": "",
            "contactInfo": {"name": "Jane", "confidence": 91, "rawText": "Jane"},
            "language": "eng",
            "timestamp": "2024-01-02T03:04:05.000Z",
            "filename": "business-card-1700000000000.jpg",
        }

        store = RecordStore(InMemorySnapshot([entry]))

        item = store.get("1700000000000")
        assert item.timestamp == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert item.contact.confidence == 91
        assert isinstance(item, HistoryItem)
