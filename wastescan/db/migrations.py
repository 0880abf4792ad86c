"""Versioned upgrades for the stored scan collection document.

Each step is a pure function taking the whole document at version ``n``
and returning a new document at version ``n + 1``. Steps run strictly in
order until the document reaches ``CURRENT_SCHEMA_VERSION``.
"""

from __future__ import annotations

import copy
import logging
import mimetypes
from collections.abc import Callable

from ..errors import MalformedStoredDataError
from ..models import parse_weight

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1

MigrationStep = Callable[[dict], dict]


def empty_document() -> dict:
    return {"schemaVersion": CURRENT_SCHEMA_VERSION, "scans": []}


def document_version(doc: dict) -> int:
    """Return the schema version tag; untagged documents count as 0."""
    version = doc.get("schemaVersion", 0)
    if isinstance(version, bool) or not isinstance(version, int):
        raise MalformedStoredDataError(f"Invalid schemaVersion: {version!r}")
    return version


def _upgrade_photo(photo) -> dict | None:
    if isinstance(photo, str) and photo:
        mime = photo[5:].split(";", 1)[0] if photo.startswith("data:") else ""
        mime = mime or mimetypes.guess_type(photo)[0] or "image/jpeg"
        return {"dataUrl": photo, "mime": mime}
    if isinstance(photo, dict) and photo.get("dataUrl"):
        return {"dataUrl": photo["dataUrl"], "mime": photo.get("mime") or "image/jpeg"}
    return None


def _v0_to_v1(doc: dict) -> dict:
    """Tag untagged documents and fill fields early builds left out."""
    scans = []
    for scan in doc.get("scans") or []:
        if not isinstance(scan, dict) or not scan.get("id"):
            continue
        created = scan.get("createdAt") or scan.get("updatedAt")
        scans.append({
            "id": scan["id"],
            "createdAt": created,
            "updatedAt": scan.get("updatedAt") or created,
            "location": scan.get("location") or None,
            "notes": scan.get("notes") or None,
            "photo": _upgrade_photo(scan.get("photo")),
            "totalResidualKg": parse_weight(scan.get("totalResidualKg")),
            "streams": [
                {
                    "id": s.get("id"),
                    "name": s.get("name") or "",
                    "weightKg": parse_weight(s.get("weightKg")),
                }
                for s in scan.get("streams") or []
                if isinstance(s, dict)
            ],
        })
    return {"schemaVersion": 1, "scans": scans}


MIGRATIONS: dict[int, MigrationStep] = {
    0: _v0_to_v1,
}


def migrate(
    doc: dict | list,
    steps: dict[int, MigrationStep] | None = None,
    target: int | None = None,
) -> dict:
    """Bring a parsed collection document up to the target schema version.

    A bare list is read as an untagged (version 0) collection. The input is
    never modified. Documents already at or above the target come back as a
    copy.

    Raises:
        MalformedStoredDataError: If the document has the wrong shape or a
            step for some intermediate version is missing.
    """
    steps = MIGRATIONS if steps is None else steps
    target = CURRENT_SCHEMA_VERSION if target is None else target

    if isinstance(doc, list):
        doc = {"schemaVersion": 0, "scans": doc}
    if not isinstance(doc, dict):
        raise MalformedStoredDataError(
            f"Expected a JSON object, got {type(doc).__name__}"
        )

    current = copy.deepcopy(doc)
    version = document_version(current)
    while version < target:
        step = steps.get(version)
        if step is None:
            raise MalformedStoredDataError(
                f"No migration from schema version {version}"
            )
        logger.info("Migrating scan collection v%d -> v%d", version, version + 1)
        current = step(current)
        current["schemaVersion"] = version + 1
        version += 1

    if not isinstance(current.get("scans"), list):
        raise MalformedStoredDataError("Collection has no scans array")
    return current
