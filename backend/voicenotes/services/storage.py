"""
Note storage on top of a local key-value store.

Layout (kept compatible with the browser app's localStorage):
- ``noteList``: JSON array of NoteRecord (the note index)
- ``note_<id>.txt``: raw text of each note (the record's content key)
- ``noteTombstones``: JSON array of Tombstone
- ``lastSyncAt``: epoch milliseconds of the last successful sync

All read-modify-write sequences on the index and the tombstone list go
through this class. There is no cross-process lock: two writers can still
interleave and the last write of the serialized blob wins.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from ..errors import CorruptLocalData
from . import events as ev
from .events import EventBus
from .kv_store import KeyValueStore
from .models import (
    Note,
    NoteIndexAdapter,
    NoteRecord,
    Tombstone,
    TombstoneListAdapter,
    dump_index,
    dump_tombstones,
    sort_index,
)

logger = logging.getLogger(__name__)

INDEX_KEY = "noteList"
TOMBSTONES_KEY = "noteTombstones"
LAST_SYNC_KEY = "lastSyncAt"


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_note_id(moment: datetime) -> str:
    """Time-derived note id, ``YYYY-MM-DD-HH-MM-SS``."""
    return moment.strftime("%Y-%m-%d-%H-%M-%S")


def content_key_for(note_id: str) -> str:
    return f"note_{note_id}.txt"


class NoteStorage:
    def __init__(
        self,
        kv: KeyValueStore,
        events: Optional[EventBus] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.kv = kv
        self.events = events or EventBus()
        self.clock = clock

    # ------------------------------------------------------------------
    # Raw index / tombstones / content
    # ------------------------------------------------------------------

    def read_index(self) -> List[NoteRecord]:
        raw = self.kv.get(INDEX_KEY)
        if not raw:
            return []
        try:
            return NoteIndexAdapter.validate_json(raw)
        except ValidationError as e:
            raise CorruptLocalData(f"Local note index is corrupted: {e}") from e

    def write_index(self, records: Iterable[NoteRecord]) -> None:
        self.kv.set(INDEX_KEY, dump_index(list(records)))

    def read_tombstones(self) -> List[Tombstone]:
        raw = self.kv.get(TOMBSTONES_KEY)
        if not raw:
            return []
        try:
            return TombstoneListAdapter.validate_json(raw)
        except ValidationError as e:
            raise CorruptLocalData(f"Local tombstone list is corrupted: {e}") from e

    def add_tombstone(self, note_id: str, deleted_at: int) -> None:
        tombstones = [t for t in self.read_tombstones() if t.id != note_id]
        tombstones.append(Tombstone(id=note_id, deleted_at=deleted_at))
        self.kv.set(TOMBSTONES_KEY, dump_tombstones(tombstones))

    def clear_tombstones(self) -> None:
        self.kv.remove(TOMBSTONES_KEY)

    def get_last_sync(self) -> Optional[int]:
        raw = self.kv.get(LAST_SYNC_KEY)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring unreadable last-sync timestamp %r", raw)
            return None

    def set_last_sync(self, timestamp: int) -> None:
        self.kv.set(LAST_SYNC_KEY, str(timestamp))

    def get_content(self, content_key: str) -> Optional[str]:
        return self.kv.get(content_key)

    def has_content(self, content_key: str) -> bool:
        return self.kv.get(content_key) is not None

    def put_content(self, content_key: str, content: str) -> None:
        self.kv.set(content_key, content)

    # ------------------------------------------------------------------
    # Note CRUD
    # ------------------------------------------------------------------

    def list_notes(self) -> List[NoteRecord]:
        return sort_index(self.read_index())

    def get_note(self, note_id: str) -> Optional[Note]:
        record = self._find(self.read_index(), note_id)
        if record is None:
            return None
        return Note.from_record(record, self.get_content(record.content_key) or "")

    def create_note(self, title: str, content: str) -> NoteRecord:
        title, content = _require_text(title, content)
        now = self.clock()
        records = self.read_index()
        existing = {r.id for r in records}

        base_id = generate_note_id(datetime.fromtimestamp(now / 1000))
        note_id = base_id
        suffix = 2
        while note_id in existing:
            note_id = f"{base_id}-{suffix}"
            suffix += 1

        record = NoteRecord(
            id=note_id,
            content_key=content_key_for(note_id),
            title=title,
            created_at=now,
            updated_at=now,
        )
        records.append(record)
        self.write_index(records)
        self.put_content(record.content_key, content)
        logger.info("Created note %s", note_id)

        self.events.emit(ev.NOTE_CREATED, note_id=note_id)
        return record

    def update_note(self, note_id: str, title: str, content: str) -> Optional[NoteRecord]:
        title, content = _require_text(title, content)
        records = self.read_index()
        record = self._find(records, note_id)
        if record is None:
            logger.warning("Note with ID %s not found", note_id)
            return None

        record.title = title
        record.updated_at = self.clock()
        self.write_index(records)
        self.put_content(record.content_key, content)
        logger.info("Updated note %s", note_id)

        self.events.emit(ev.NOTE_UPDATED, note_id=note_id)
        return record

    def delete_note(self, note_id: str) -> bool:
        records = self.read_index()
        record = self._find(records, note_id)
        if record is None:
            logger.warning("Note with ID %s not found", note_id)
            return False

        records = [r for r in records if r.id != note_id]
        self.write_index(records)
        self.kv.remove(record.content_key)
        self.add_tombstone(note_id, self.clock())
        logger.info("Deleted note %s", note_id)

        self.events.emit(ev.NOTE_DELETED, note_id=note_id)
        return True

    @staticmethod
    def _find(records: List[NoteRecord], note_id: str) -> Optional[NoteRecord]:
        return next((r for r in records if r.id == note_id), None)


def _require_text(title: str, content: str) -> tuple[str, str]:
    title = (title or "").strip()
    content = (content or "").strip()
    if not title:
        raise ValueError("Please enter a title for your note")
    if not content:
        raise ValueError("There is no content to save")
    return title, content
