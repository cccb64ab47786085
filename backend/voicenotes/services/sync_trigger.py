"""
When to sync.

Sync runs after every note create/update/delete, after the storage settings
change, when the notes view becomes visible and once shortly after startup.
There is no periodic timer. Triggered passes run without notifications and a
failure is logged and re-published as ``sync-failed``; it never propagates
back into whoever emitted the triggering event.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from ..errors import VoiceNotesError
from . import events as ev
from .sync_engine import SyncEngine, SyncSummary

logger = logging.getLogger(__name__)

_TRIGGER_EVENTS = (
    ev.NOTE_CREATED,
    ev.NOTE_UPDATED,
    ev.NOTE_DELETED,
    ev.STORAGE_SETTINGS_CHANGED,
)


class SyncTrigger:
    def __init__(self, engine: SyncEngine):
        self.engine = engine
        self._unsubscribers: List[Callable[[], None]] = []
        self._timer: Optional[threading.Timer] = None

    def attach(self) -> "SyncTrigger":
        for name in _TRIGGER_EVENTS:
            self._unsubscribers.append(
                self.engine.events.subscribe(name, self._make_handler(name))
            )
        return self

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def on_notes_view_visible(self) -> Optional[SyncSummary]:
        return self.run("notes-view-visible")

    def schedule_initial_sync(self, delay_seconds: float) -> threading.Timer:
        timer = threading.Timer(delay_seconds, self.run, args=("startup",))
        timer.daemon = True
        timer.start()
        self._timer = timer
        return timer

    def run(self, reason: str) -> Optional[SyncSummary]:
        if not self.engine.configured:
            logger.debug("Skipping %s sync: remote storage not configured", reason)
            return None
        logger.info("Sync triggered by %s", reason)
        try:
            return self.engine.sync(show_notifications=False)
        except VoiceNotesError as e:
            logger.warning("Sync triggered by %s failed: %s", reason, e)
            self.engine.events.emit(ev.SYNC_FAILED, reason=reason, error=str(e))
            return None

    def _make_handler(self, name: str):
        def _handler(detail) -> None:
            if name == ev.STORAGE_SETTINGS_CHANGED and not detail.get("configured", True):
                return
            self.run(name)

        return _handler
