"""
Tests for note storage (voicenotes/services/storage.py) and the key-value stores.

Covers:
- create/update/delete of notes and their events
- tombstones and last-sync bookkeeping
- the SQLAlchemy-backed key-value store
"""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

from voicenotes.errors import CorruptLocalData
from voicenotes.services import events as ev
from voicenotes.services.events import EventBus
from voicenotes.services.kv_store import InMemoryKeyValueStore, SQLKeyValueStore
from voicenotes.services.storage import (
    INDEX_KEY,
    TOMBSTONES_KEY,
    NoteStorage,
    content_key_for,
    generate_note_id,
)


class _Clock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture()
def clock():
    return _Clock(int(datetime(2024, 3, 9, 14, 5, 7).timestamp() * 1000))


@pytest.fixture()
def storage(clock):
    return NoteStorage(InMemoryKeyValueStore(), EventBus(), clock=clock)


def test_generate_note_id_format():
    assert generate_note_id(datetime(2024, 3, 9, 14, 5, 7)) == "2024-03-09-14-05-07"
    assert content_key_for("2024-03-09-14-05-07") == "note_2024-03-09-14-05-07.txt"


def test_create_note_writes_index_and_content(storage, clock):
    record = storage.create_note("  Grocery list ", "Milk, eggs\n")

    assert record.id == "2024-03-09-14-05-07"
    assert record.title == "Grocery list"
    assert record.created_at == record.updated_at == clock.now
    assert storage.get_content(record.content_key) == "Milk, eggs"
    stored = json.loads(storage.kv.get(INDEX_KEY))
    assert stored[0]["contentKey"] == "note_2024-03-09-14-05-07.txt"
    assert stored[0]["updatedAt"] == clock.now


def test_create_note_same_second_gets_unique_id(storage):
    first = storage.create_note("One", "a")
    second = storage.create_note("Two", "b")

    assert first.id != second.id
    assert second.id == f"{first.id}-2"


@pytest.mark.parametrize("title,content", [("", "text"), ("Title", "   ")])
def test_create_note_requires_title_and_content(storage, title, content):
    with pytest.raises(ValueError):
        storage.create_note(title, content)


def test_update_note_bumps_updated_at(storage, clock):
    record = storage.create_note("Draft", "v1")
    clock.now += 5000

    updated = storage.update_note(record.id, "Final", "v2")

    assert updated.updated_at == clock.now
    assert updated.created_at == record.created_at
    note = storage.get_note(record.id)
    assert note.title == "Final"
    assert note.content == "v2"


def test_update_missing_note_returns_none(storage):
    assert storage.update_note("nope", "t", "c") is None


def test_delete_note_records_tombstone(storage, clock):
    record = storage.create_note("Gone", "soon")
    clock.now += 1000

    assert storage.delete_note(record.id) is True

    assert storage.get_note(record.id) is None
    assert storage.get_content(record.content_key) is None
    tombstones = storage.read_tombstones()
    assert [(t.id, t.deleted_at) for t in tombstones] == [(record.id, clock.now)]
    assert json.loads(storage.kv.get(TOMBSTONES_KEY))[0]["deletedAt"] == clock.now


def test_delete_missing_note_returns_false(storage):
    assert storage.delete_note("nope") is False
    assert storage.read_tombstones() == []


def test_list_notes_newest_update_first(storage, clock):
    a = storage.create_note("A", "a")
    clock.now += 1000
    b = storage.create_note("B", "b")
    clock.now += 1000
    storage.update_note(a.id, "A2", "a2")

    assert [r.id for r in storage.list_notes()] == [a.id, b.id]


def test_crud_emits_note_events(storage):
    seen = []
    for name in (ev.NOTE_CREATED, ev.NOTE_UPDATED, ev.NOTE_DELETED):
        storage.events.subscribe(name, lambda d, name=name: seen.append((name, d["note_id"])))

    record = storage.create_note("T", "c")
    storage.update_note(record.id, "T", "c2")
    storage.delete_note(record.id)

    assert seen == [
        (ev.NOTE_CREATED, record.id),
        (ev.NOTE_UPDATED, record.id),
        (ev.NOTE_DELETED, record.id),
    ]


def test_clear_tombstones(storage):
    storage.add_tombstone("a", 1)
    storage.add_tombstone("b", 2)
    storage.add_tombstone("a", 3)

    assert [(t.id, t.deleted_at) for t in storage.read_tombstones()] == [("b", 2), ("a", 3)]
    storage.clear_tombstones()
    assert storage.read_tombstones() == []


def test_last_sync_roundtrip(storage):
    assert storage.get_last_sync() is None
    storage.set_last_sync(12345)
    assert storage.get_last_sync() == 12345


def test_unreadable_last_sync_is_ignored(storage):
    storage.kv.set("lastSyncAt", "yesterday")
    assert storage.get_last_sync() is None


def test_corrupt_local_index_raises(storage):
    storage.kv.set(INDEX_KEY, "{oops")

    with pytest.raises(CorruptLocalData):
        storage.list_notes()


# ============================================================================
# SQLKeyValueStore
# ============================================================================


def test_sql_store_get_set_remove(tmp_path: Path):
    kv = SQLKeyValueStore(db_path=tmp_path / "kv.db")

    assert kv.get("missing") is None
    kv.set("k", "v1")
    kv.set("k", "v2")
    assert kv.get("k") == "v2"
    kv.remove("k")
    kv.remove("k")
    assert kv.get("k") is None


def test_sql_store_persists_notes_across_instances(tmp_path: Path, clock):
    db = tmp_path / "notes.db"
    record = NoteStorage(SQLKeyValueStore(db_path=db), clock=clock).create_note("Kept", "text")

    reopened = NoteStorage(SQLKeyValueStore(db_path=db))

    assert reopened.get_note(record.id).content == "text"
