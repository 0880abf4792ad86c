"""Scan record repository on top of a key-value persistence delegate."""

from __future__ import annotations

import copy
import json
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from ..errors import (
    MalformedStoredDataError,
    NewerSchemaError,
    PersistenceError,
    ValidationError,
)
from ..ids import new_id
from ..models import (
    EmbeddedPhoto,
    Scan,
    StreamEntry,
    parse_timestamp,
    parse_weight,
    utc_now,
)
from .migrations import CURRENT_SCHEMA_VERSION, document_version, migrate
from .store import KeyValueStore

logger = logging.getLogger(__name__)

SCANS_KEY = "waste_scan"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)

# Patch keys accepted by update(), in Python and stored (camelCase) spelling
_PATCH_FIELDS = {
    "location": "location",
    "notes": "notes",
    "photo": "photo",
    "total_residual_kg": "total_residual_kg",
    "totalResidualKg": "total_residual_kg",
    "streams": "streams",
}
# Managed by the repository; silently dropped from patches
_READ_ONLY_FIELDS = {"id", "created_at", "createdAt", "updated_at", "updatedAt"}


class ScanRepository:
    """Owns the stored collection of scans.

    The collection is loaded (and migrated) on first use and cached. Every
    mutation rewrites the whole collection through the store while holding
    a lock, so two read-modify-write sequences never interleave. Records
    handed out are copies.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = SCANS_KEY,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._store = store
        self._key = key
        self._clock = clock
        self._new_id = id_factory
        self._lock = threading.RLock()
        self._scans: list[Scan] | None = None
        self._version = CURRENT_SCHEMA_VERSION
        self._pending_write = False
        self._retired_ids: set[str] = set()

    @property
    def pending_write(self) -> bool:
        """True while the last change has not reached the store."""
        return self._pending_write

    @property
    def schema_version(self) -> int:
        with self._lock:
            self._load()
            return self._version

    # -- reading ----------------------------------------------------------

    def list(self) -> list[Scan]:
        """Return all scans, most recently touched first.

        Ties keep their stored (insertion) order.
        """
        with self._lock:
            scans = copy.deepcopy(self._load())
        return sorted(scans, key=lambda s: s.last_touched or _OLDEST, reverse=True)

    def get(self, scan_id: str) -> Scan | None:
        with self._lock:
            index = self._index_of(scan_id)
            if index is None:
                return None
            return copy.deepcopy(self._scans[index])

    def reload(self) -> None:
        """Drop the cached collection so the next call reads the store again."""
        with self._lock:
            self._scans = None
            self._pending_write = False

    # -- writing ----------------------------------------------------------

    def create(self, draft: Scan | dict) -> Scan:
        """Store a draft as a new scan and return the stored record.

        Assigns a fresh id and both timestamps; any id or timestamps on the
        draft are ignored.

        Raises:
            NewerSchemaError: If the stored collection has a newer schema.
            PersistenceError: If the store refused the write. The scan is
                kept in memory and returned as ``error.result``.
        """
        if isinstance(draft, dict):
            draft = Scan.from_dict(draft)
        with self._lock:
            scans = self._writable_scans()
            now = self._clock().isoformat()
            scan = Scan(
                id=self._fresh_scan_id(),
                created_at=now,
                updated_at=now,
                location=draft.location or None,
                notes=draft.notes or None,
                photo=EmbeddedPhoto.from_dict(draft.photo),
                total_residual_kg=parse_weight(draft.total_residual_kg),
                streams=self._normalize_streams(draft.streams, owner_id=None),
            )
            scans.append(scan)
            logger.debug("Created scan %s", scan.id)
            return self._commit(copy.deepcopy(scan))

    def update(self, scan_id: str, changes: Scan | dict[str, Any]) -> Scan | None:
        """Merge ``changes`` into a stored scan.

        Provided fields replace stored ones, omitted fields are kept.
        ``id`` and ``created_at`` never change. Returns None without side
        effects when the id is unknown.

        Raises:
            ValidationError: If ``changes`` names an unknown field.
            NewerSchemaError: If the stored collection has a newer schema.
            PersistenceError: If the store refused the write; the updated
                record is ``error.result``.
        """
        patch = self._to_patch(changes)
        with self._lock:
            self._writable_scans()
            index = self._index_of(scan_id)
            if index is None:
                return None
            current = self._scans[index]
            updated = copy.deepcopy(current)
            for attr, value in patch.items():
                if attr == "streams":
                    updated.streams = self._normalize_streams(value, owner_id=scan_id)
                elif attr == "photo":
                    updated.photo = EmbeddedPhoto.from_dict(value)
                elif attr == "total_residual_kg":
                    updated.total_residual_kg = parse_weight(value)
                else:
                    setattr(updated, attr, str(value) if value else None)
            updated.updated_at = self._touch(current.created_at)
            self._scans[index] = updated
            return self._commit(copy.deepcopy(updated))

    def delete(self, scan_id: str) -> bool:
        """Remove a scan. Returns False, changing nothing, if it is unknown.

        Raises:
            NewerSchemaError: If the stored collection has a newer schema.
            PersistenceError: If the store refused the write; the scan is
                already gone from memory and ``error.result`` is True.
        """
        with self._lock:
            self._writable_scans()
            index = self._index_of(scan_id)
            if index is None:
                return False
            del self._scans[index]
            self._retired_ids.add(scan_id)
            logger.debug("Deleted scan %s", scan_id)
            return self._commit(True)

    def flush(self) -> None:
        """Retry a write that failed earlier, if any."""
        with self._lock:
            if self._pending_write:
                self._persist()

    # -- internals --------------------------------------------------------

    def _load(self) -> list[Scan]:
        if self._scans is None:
            self._scans = self._read_collection()
        return self._scans

    def _writable_scans(self) -> list[Scan]:
        scans = self._load()
        if self._version > CURRENT_SCHEMA_VERSION:
            raise NewerSchemaError(self._version, CURRENT_SCHEMA_VERSION)
        return scans

    def _read_collection(self) -> list[Scan]:
        raw = self._store.read(self._key)
        if raw is None:
            self._version = CURRENT_SCHEMA_VERSION
            return []

        try:
            doc = json.loads(raw)
            stored_version = document_version(doc) if isinstance(doc, dict) else 0
            doc = migrate(doc)
            scans = [Scan.from_dict(s) for s in doc["scans"] if isinstance(s, dict)]
        except (ValueError, TypeError, MalformedStoredDataError) as e:
            # Corrupt bytes stay in the store until the next real mutation
            logger.warning(
                "Stored scan collection is unreadable, starting empty: %s", e
            )
            self._version = CURRENT_SCHEMA_VERSION
            return []

        self._version = doc["schemaVersion"]
        if stored_version > CURRENT_SCHEMA_VERSION:
            logger.warning(
                "Scan collection has schema v%d, newer than v%d; opened read-only",
                stored_version,
                CURRENT_SCHEMA_VERSION,
            )
        elif stored_version < CURRENT_SCHEMA_VERSION:
            self._scans = scans
            try:
                self._persist()
            except PersistenceError:
                logger.warning("Upgraded scan collection could not be saved yet")
        return scans

    def _persist(self) -> None:
        doc = {
            "schemaVersion": self._version,
            "scans": [s.to_dict() for s in self._scans or []],
        }
        try:
            self._store.write(self._key, json.dumps(doc, ensure_ascii=False))
        except PersistenceError:
            self._pending_write = True
            logger.warning("Scan collection was not saved", exc_info=True)
            raise
        self._pending_write = False

    def _commit(self, result: Any) -> Any:
        try:
            self._persist()
        except PersistenceError as e:
            e.result = result
            raise
        return result

    def _index_of(self, scan_id: str) -> int | None:
        for i, scan in enumerate(self._load()):
            if scan.id == scan_id:
                return i
        return None

    def _touch(self, created_at: str | None) -> str:
        now = self._clock()
        created = parse_timestamp(created_at)
        if created is not None and created > now:
            return created.isoformat()
        return now.isoformat()

    def _fresh_scan_id(self) -> str:
        taken = {s.id for s in self._scans or []} | self._retired_ids
        scan_id = self._new_id()
        while scan_id in taken:
            scan_id = self._new_id()
        return scan_id

    def _normalize_streams(
        self, streams: Any, owner_id: str | None
    ) -> list[StreamEntry]:
        """Assign missing or clashing ids, coerce weights, drop unnamed rows."""
        taken = {
            entry.id
            for scan in self._scans or []
            if scan.id != owner_id
            for entry in scan.streams
        }
        result: list[StreamEntry] = []
        for raw in streams or []:
            entry = StreamEntry.from_dict(raw)
            if not entry.name or not entry.name.strip():
                continue
            entry.weight_kg = parse_weight(entry.weight_kg)
            if not entry.id or entry.id in taken:
                entry.id = self._new_id()
                while entry.id in taken:
                    entry.id = self._new_id()
            taken.add(entry.id)
            result.append(entry)
        return result

    @staticmethod
    def _to_patch(changes: Scan | dict[str, Any]) -> dict[str, Any]:
        if isinstance(changes, Scan):
            return {
                "location": changes.location,
                "notes": changes.notes,
                "photo": changes.photo,
                "total_residual_kg": changes.total_residual_kg,
                "streams": changes.streams,
            }
        patch: dict[str, Any] = {}
        for name, value in (changes or {}).items():
            if name in _READ_ONLY_FIELDS:
                continue
            if name not in _PATCH_FIELDS:
                raise ValidationError(f"Unknown scan field: {name!r}")
            patch[_PATCH_FIELDS[name]] = value
        return patch
