"""
In-process event channel.

Services publish note and sync events here instead of broadcasting on a
global object; the sync trigger and the API layer subscribe to what they need.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from threading import Lock
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

NOTE_CREATED = "note-created"
NOTE_UPDATED = "note-updated"
NOTE_DELETED = "note-deleted"
NOTES_UPDATED = "notes-updated"
STORAGE_SETTINGS_CHANGED = "storage-settings-changed"
SYNC_STATE = "sync-state"
SYNC_NOTIFICATION = "sync-notification"
SYNC_FAILED = "sync-failed"
PIPELINE_PROGRESS = "pipeline-progress"

Handler = Callable[[Dict[str, Any]], None]


class EventBus:
    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event``; returns a function that unsubscribes it."""
        with self._lock:
            self._handlers[event].append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers[event]:
                    self._handlers[event].remove(handler)

        return _unsubscribe

    def emit(self, event: str, **detail: Any) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, ()))
        logger.debug("emit %s to %d handler(s)", event, len(handlers))
        for handler in handlers:
            handler(detail)
