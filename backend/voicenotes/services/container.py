"""
Dependency injection container for backend services.

We store a single Services instance on the Flask app (app.extensions["services"]).
Routes can then fetch dependencies via get_services() which makes route tests able
to inject fakes without importing/initializing global singletons.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ..asr import OpenAITranscriber
from ..config import Config
from .events import EventBus
from .kv_store import KeyValueStore, SQLKeyValueStore
from .pipeline import ChunkedTranscriptionPipeline
from .refiner import TextRefiner
from .s3_store import ObjectStore, store_from_config
from .storage import NoteStorage
from .sync_engine import SyncEngine
from .sync_trigger import SyncTrigger


@dataclass(frozen=True)
class Services:
    events: EventBus
    storage: NoteStorage
    sync: SyncEngine
    trigger: SyncTrigger
    pipeline: ChunkedTranscriptionPipeline
    refiner: TextRefiner


def build_services(
    *,
    kv: KeyValueStore,
    remote: Optional[ObjectStore] = None,
    transcriber=None,
    refiner=None,
    window_seconds: Optional[float] = None,
    overlap_seconds: Optional[float] = None,
) -> Services:
    """Wire services around the given stores; used directly by tests."""
    events = EventBus()
    storage = NoteStorage(kv, events)
    engine = SyncEngine(storage, remote, index_key=Config.S3_INDEX_KEY)
    trigger = SyncTrigger(engine).attach()
    pipeline = ChunkedTranscriptionPipeline(
        transcriber or OpenAITranscriber(),
        window_seconds=Config.CHUNK_WINDOW_SECONDS if window_seconds is None else window_seconds,
        overlap_seconds=Config.CHUNK_OVERLAP_SECONDS if overlap_seconds is None else overlap_seconds,
        events=events,
    )
    return Services(
        events=events,
        storage=storage,
        sync=engine,
        trigger=trigger,
        pipeline=pipeline,
        refiner=refiner or TextRefiner(),
    )


def create_services(*, database_url: Optional[str] = None) -> Services:
    """
    Build the production Services container.

    Args:
        database_url: Optional override for database URL (useful for tests).
    """
    kv = SQLKeyValueStore(database_url=database_url or Config.DATABASE_URL)
    return build_services(kv=kv, remote=store_from_config())


def get_services() -> Services:
    """
    Fetch the Services container from the current Flask app.

    Raises:
        RuntimeError if services have not been attached to the app.
    """
    services = current_app.extensions.get("services")
    if services is None:
        raise RuntimeError('Services not configured. Expected app.extensions["services"].')
    return services
