"""Key-value persistence delegates used by the repositories."""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import PersistenceError, QuotaExceededError
from .schema import ensure_schema

if TYPE_CHECKING:
    from ..config import StorageConfig

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """A shared string store addressed by namespace key.

    Implementations have no transactional isolation of their own; callers
    serialize read-modify-write sequences.
    """

    @abstractmethod
    def read(self, key: str) -> str | None:
        """Return the stored string, or None if the key was never written."""
        ...

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``.

        Raises:
            QuotaExceededError: If the store is full.
            PersistenceError: For any other write failure.
        """
        ...

    def close(self) -> None:
        pass


class MemoryStore(KeyValueStore):
    """In-process store, optionally limited to ``quota_bytes`` in total."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def read(self, key: str) -> str | None:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            others = sum(
                len(v.encode("utf-8")) for k, v in self._data.items() if k != key
            )
            if others + len(value.encode("utf-8")) > self._quota_bytes:
                raise QuotaExceededError(
                    f"Storage quota exceeded writing {key!r} "
                    f"({self._quota_bytes} bytes available)"
                )
        self._data[key] = value


class SQLiteStore(KeyValueStore):
    """Durable store keeping each namespace as one row of a SQLite table."""

    def __init__(
        self, db_path: str | Path = "~/.config/wastescan/wastescan.db"
    ) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def read(self, key: str) -> str | None:
        try:
            row = self._get_conn().execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read {key!r}: {e}") from e
        return row["value"] if row else None

    def write(self, key: str, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO kv_store (key, value, updated_at)
                   VALUES (?, ?, datetime('now'))
                   ON CONFLICT(key) DO UPDATE SET
                     value=excluded.value,
                     updated_at=excluded.updated_at""",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            if "full" in str(e).lower():
                raise QuotaExceededError(f"Storage is full: {e}") from e
            raise PersistenceError(f"Could not write {key!r}: {e}") from e


def create_store(config: StorageConfig) -> KeyValueStore:
    """Create a persistence delegate based on configuration."""
    match config.backend:
        case "sqlite":
            logger.debug("Using SQLite store at %s", config.path)
            return SQLiteStore(config.path)
        case "memory":
            return MemoryStore()
        case _:
            raise ValueError(
                f"Unknown storage backend: {config.backend!r} "
                f"(choose sqlite or memory)"
            )
