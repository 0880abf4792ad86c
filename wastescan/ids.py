"""Opaque identifiers for scans and stream entries."""

from __future__ import annotations

import uuid


def new_id() -> str:
    """Return a random UUID4 in canonical hyphenated form."""
    return str(uuid.uuid4())
