"""Persistence for scan records and settings."""

from .migrations import CURRENT_SCHEMA_VERSION, MIGRATIONS, migrate
from .scans import SCANS_KEY, ScanRepository
from .schema import ensure_schema
from .settings import SETTINGS_KEY, SettingsStore
from .store import KeyValueStore, MemoryStore, SQLiteStore, create_store

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "MIGRATIONS",
    "migrate",
    "SCANS_KEY",
    "ScanRepository",
    "ensure_schema",
    "SETTINGS_KEY",
    "SettingsStore",
    "KeyValueStore",
    "MemoryStore",
    "SQLiteStore",
    "create_store",
]
