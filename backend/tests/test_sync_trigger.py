from __future__ import annotations

import threading

from voicenotes.errors import RemoteUnavailable
from voicenotes.services import events as ev
from voicenotes.services.kv_store import InMemoryKeyValueStore
from voicenotes.services.s3_store import InMemoryObjectStore
from voicenotes.services.storage import NoteStorage
from voicenotes.services.sync_engine import SyncEngine
from voicenotes.services.sync_trigger import SyncTrigger


class _CountingEngine(SyncEngine):
    def __init__(self, storage, remote, fail=False):
        super().__init__(storage, remote)
        self.calls = []
        self.fail = fail

    def sync(self, show_notifications: bool = True):
        self.calls.append(show_notifications)
        if self.fail:
            raise RemoteUnavailable("S3 download failed: timeout")
        return super().sync(show_notifications)


def _engine(remote=InMemoryObjectStore, fail=False):
    storage = NoteStorage(InMemoryKeyValueStore())
    return _CountingEngine(storage, remote() if remote else None, fail=fail)


def test_note_events_trigger_silent_sync():
    engine = _engine()
    SyncTrigger(engine).attach()

    record = engine.storage.create_note("T", "c")
    engine.storage.update_note(record.id, "T", "c2")
    engine.storage.delete_note(record.id)

    assert engine.calls == [False, False, False]


def test_storage_settings_change_triggers_sync():
    engine = _engine(remote=None)
    SyncTrigger(engine).attach()

    engine.configure_remote(None)
    assert engine.calls == []

    engine.configure_remote(InMemoryObjectStore())
    assert engine.calls == [False]


def test_unconfigured_engine_is_skipped():
    engine = _engine(remote=None)
    trigger = SyncTrigger(engine).attach()

    engine.storage.create_note("T", "c")

    assert engine.calls == []
    assert trigger.on_notes_view_visible() is None


def test_failed_sync_is_reported_not_raised():
    engine = _engine(fail=True)
    SyncTrigger(engine).attach()
    failures = []
    engine.events.subscribe(ev.SYNC_FAILED, failures.append)

    engine.storage.create_note("T", "c")

    assert failures == [{"reason": ev.NOTE_CREATED, "error": "S3 download failed: timeout"}]


def test_detach_stops_triggering():
    engine = _engine()
    trigger = SyncTrigger(engine).attach()
    trigger.detach()

    engine.storage.create_note("T", "c")

    assert engine.calls == []


def test_initial_sync_runs_once_after_delay():
    engine = _engine()
    trigger = SyncTrigger(engine)
    done = threading.Event()
    engine.events.subscribe(ev.SYNC_STATE, lambda d: d["state"] == "synced" and done.set())

    timer = trigger.schedule_initial_sync(0.01)
    timer.join(timeout=5)

    assert done.wait(timeout=5)
    assert engine.calls == [False]
