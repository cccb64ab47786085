"""
Local key-value stores.

``KeyValueStore`` is the localStorage-shaped interface (get/set/remove of
strings) that note storage and the sync engine consume. Two implementations:
an in-memory dict for tests and a SQLAlchemy table for the server.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Dict, Generator, Optional, Protocol, Union

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..database import Base, KeyValueEntry, create_engine_for_url


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SQLKeyValueStore:
    """Key-value store backed by the ``kv_entries`` table."""

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        *,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
    ):
        if engine is not None:
            self.engine = engine
        else:
            url = database_url
            if url is None and db_path is not None:
                url = f"sqlite:///{Path(db_path)}"
            self.engine = create_engine_for_url(url)

        self.dialect = self.engine.dialect.name
        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )

    @contextmanager
    def _session_scope(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, key: str) -> Optional[str]:
        with self._session_scope() as session:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        with self._session_scope() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value

    def remove(self, key: str) -> None:
        with self._session_scope() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
