"""
Two-way sync between local note storage and a remote object store.

One sync pass:
1. fetch the remote index (absent on the very first sync)
2. parse it, failing without touching local state if it is corrupt
3. merge remote into local, last write wins by ``updated_at``, skipping
   locally deleted (tombstoned) ids
4. download content missing locally
5. delete remote content of tombstoned notes, then clear all tombstones
6. upload the full merged index plus content changed since the last sync
7. record the completion time as the new last-sync timestamp

Every phase is sequential and any remote failure aborts the pass. Nothing is
rolled back; re-merging and re-deleting are idempotent, so a retry is safe.
Concurrent passes are not mutually excluded.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from pydantic import ValidationError

from ..errors import CorruptRemoteData, NotFound, SyncNotConfigured
from . import events as ev
from .models import NoteIndexAdapter, NoteRecord, dump_index, sort_index
from .s3_store import ObjectStore
from .storage import NoteStorage

logger = logging.getLogger(__name__)

DEFAULT_INDEX_KEY = "voice-notes.json"


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    SYNCED = "synced"
    FAILED = "failed"


@dataclass
class SyncMessage:
    level: str
    message: str


@dataclass
class SyncSummary:
    remote_index_found: bool = False
    merged_count: int = 0
    added_ids: List[str] = field(default_factory=list)
    updated_ids: List[str] = field(default_factory=list)
    downloaded_keys: List[str] = field(default_factory=list)
    deleted_remote_keys: List[str] = field(default_factory=list)
    uploaded_keys: List[str] = field(default_factory=list)
    messages: List[SyncMessage] = field(default_factory=list)
    completed_at: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


def merge_notes(
    local: Iterable[NoteRecord],
    remote: Iterable[NoteRecord],
    tombstoned_ids: Optional[Set[str]] = None,
) -> List[NoteRecord]:
    """
    Merge a remote index into a local one.

    A remote record wins when its id is missing locally or its ``updated_at``
    is strictly newer, unless the id is tombstoned. Ties keep the local
    record. The result is sorted by ``updated_at`` descending.
    """
    tombstoned_ids = tombstoned_ids or set()
    notes_map: Dict[str, NoteRecord] = {}
    for record in local:
        notes_map[record.id] = record

    for remote_record in remote:
        if remote_record.id in tombstoned_ids:
            continue
        current = notes_map.get(remote_record.id)
        if current is None or remote_record.updated_at > current.updated_at:
            notes_map[remote_record.id] = remote_record

    return sort_index(list(notes_map.values()))


def parse_remote_index(payload: bytes) -> List[NoteRecord]:
    try:
        return NoteIndexAdapter.validate_json(payload)
    except ValidationError as e:
        raise CorruptRemoteData(f"Error parsing S3 data: {e}") from e


class SyncEngine:
    def __init__(
        self,
        storage: NoteStorage,
        remote: Optional[ObjectStore] = None,
        *,
        index_key: str = DEFAULT_INDEX_KEY,
    ):
        self.storage = storage
        self.remote = remote
        self.index_key = index_key
        self.state = SyncState.IDLE

    @property
    def events(self) -> ev.EventBus:
        return self.storage.events

    @property
    def configured(self) -> bool:
        return self.remote is not None

    def configure_remote(self, remote: Optional[ObjectStore]) -> None:
        """Swap the remote store after a storage-settings change."""
        self.remote = remote
        self.events.emit(ev.STORAGE_SETTINGS_CHANGED, configured=remote is not None)

    def sync(self, show_notifications: bool = True) -> SyncSummary:
        if self.remote is None:
            raise SyncNotConfigured("Please configure AWS S3 settings first.")

        summary = SyncSummary()
        self._set_state(SyncState.SYNCING)
        try:
            self._run(self.remote, summary, show_notifications)
        except Exception:
            self._set_state(SyncState.FAILED)
            raise
        self._set_state(SyncState.SYNCED)
        return summary

    def _run(self, remote: ObjectStore, summary: SyncSummary, show_notifications: bool) -> None:
        storage = self.storage
        tombstones = storage.read_tombstones()
        tombstoned_ids = {t.id for t in tombstones}
        local_index = storage.read_index()

        # Steps 1-3: fetch, parse, merge
        remote_index = self._fetch_remote_index(remote)
        if remote_index is None:
            self._notify(summary, show_notifications, "warning", "No notes found on S3.")
            merged = sort_index(local_index)
        else:
            summary.remote_index_found = True
            local_by_id = {r.id: r for r in local_index}
            merged = merge_notes(local_index, remote_index, tombstoned_ids)
            for record in merged:
                previous = local_by_id.get(record.id)
                if previous is None:
                    summary.added_ids.append(record.id)
                elif record is not previous:
                    summary.updated_ids.append(record.id)
            storage.write_index(merged)
            logger.info(
                "Merged %d remote note(s) into %d local note(s): %d added, %d updated",
                len(remote_index),
                len(local_index),
                len(summary.added_ids),
                len(summary.updated_ids),
            )
        summary.merged_count = len(merged)

        # Step 4: content missing locally. A record replaced by a newer remote
        # one keeps its local text, which step 6 then re-uploads.
        for record in merged:
            if record.id in tombstoned_ids or storage.has_content(record.content_key):
                continue
            data = remote.get_object(record.content_key)
            try:
                content = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CorruptRemoteData(f"Note content {record.content_key} is not UTF-8") from e
            storage.put_content(record.content_key, content)
            summary.downloaded_keys.append(record.content_key)
        if remote_index is not None:
            self._notify(summary, show_notifications, "success", "Notes synchronized from S3.")
        self.events.emit(ev.NOTES_UPDATED, count=len(merged))

        # Step 5: propagate local deletions
        if tombstones:
            if remote_index is None:
                remote_index = self._fetch_remote_index(remote) or []
            remote_by_id = {r.id: r for r in remote_index}
            for tombstone in tombstones:
                target = remote_by_id.get(tombstone.id)
                if target is None:
                    continue
                remote.delete_object(target.content_key)
                summary.deleted_remote_keys.append(target.content_key)
            storage.clear_tombstones()
            logger.info(
                "Propagated %d deletion(s), %d remote object(s) removed",
                len(tombstones),
                len(summary.deleted_remote_keys),
            )

        # Step 6: upload
        last_sync = storage.get_last_sync()
        if last_sync is None:
            to_upload = list(merged)
        else:
            to_upload = [r for r in merged if r.updated_at > last_sync]

        remote.put_object(self.index_key, dump_index(merged).encode("utf-8"), "application/json")
        summary.uploaded_keys.append(self.index_key)

        if not to_upload:
            self._notify(summary, show_notifications, "warning", "No notes to upload.")
        for record in to_upload:
            content = storage.get_content(record.content_key)
            if content is None:
                logger.warning("Skipping upload of %s: no local content", record.content_key)
                continue
            remote.put_object(record.content_key, content.encode("utf-8"), "text/plain")
            summary.uploaded_keys.append(record.content_key)
        if to_upload:
            self._notify(summary, show_notifications, "success", "Notes synchronized to S3.")

        # Step 7
        summary.completed_at = storage.clock()
        storage.set_last_sync(summary.completed_at)
        logger.info(
            "Sync complete: %d note(s), %d downloaded, %d uploaded",
            summary.merged_count,
            len(summary.downloaded_keys),
            len(summary.uploaded_keys),
        )

    def _fetch_remote_index(self, remote: ObjectStore) -> Optional[List[NoteRecord]]:
        try:
            payload = remote.get_object(self.index_key)
        except NotFound:
            logger.info("Remote index %s not found, treating as first sync", self.index_key)
            return None
        return parse_remote_index(payload)

    def _notify(self, summary: SyncSummary, show: bool, level: str, message: str) -> None:
        summary.messages.append(SyncMessage(level=level, message=message))
        if show:
            self.events.emit(ev.SYNC_NOTIFICATION, level=level, message=message)

    def _set_state(self, state: SyncState) -> None:
        self.state = state
        self.events.emit(ev.SYNC_STATE, state=state.value)
