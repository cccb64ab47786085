"""
SQLAlchemy model and engine utilities for the local key-value store.

The browser app kept everything in localStorage; here the same keys live in
one ``kv_entries`` table so notes survive restarts.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, String, Text, TIMESTAMP, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

logger = logging.getLogger(__name__)

Base = declarative_base()


class KeyValueEntry(Base):
    """One localStorage-style entry."""

    __tablename__ = "kv_entries"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now()
    )


def get_database_url() -> str:
    """
    Get database URL from environment, defaulting to SQLite.

    Returns:
        Database connection string
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    db_path = Path(__file__).parent.parent / ".voice_notes.db"
    logger.warning("DATABASE_URL not set, using SQLite database at %s", db_path)
    return f"sqlite:///{db_path}"


def create_engine_for_url(database_url: Optional[str] = None) -> Engine:
    """Build a SQLAlchemy engine for the given URL (or default environment)."""
    url = database_url or get_database_url()
    engine = create_engine(
        url,
        future=True,
        echo=False,
        pool_pre_ping=True,
    )

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragmas)

    return engine


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    """Apply SQLite pragmas (WAL) so readers do not block the writer."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()
