"""Data models for waste scans, stream line items and embedded photos."""

from __future__ import annotations

import base64
import binascii
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .errors import ValidationError

STREAM_PRESETS: list[str] = [
    "Cardboard",
    "Paper",
    "Plastics (hard)",
    "Plastics (film)",
    "Metal",
    "Glass",
    "Bio/Food",
    "Wood",
    "Textiles",
    "E-waste",
    "Other",
]

# Leading decimal prefix, so "12abc" reads as 12
_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]+);base64,(?P<data>.+)$", re.DOTALL)


def parse_weight(value: Any) -> float:
    """Coerce user or stored input to a non-negative weight in kg.

    Numbers pass through, strings are read up to the first non-numeric
    character. Anything unparseable, negative or non-finite becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER_PREFIX.match(value)
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Anything that is not a non-empty string yields None.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _timestamp_text(value: Any) -> str | None:
    # Unparseable stored timestamps become None
    return value if parse_timestamp(value) is not None else None


@dataclass
class EmbeddedPhoto:
    """An encoded image kept as an opaque value."""

    data_url: str
    mime: str = "image/jpeg"

    @classmethod
    def from_bytes(cls, data: bytes, mime: str = "image/jpeg") -> EmbeddedPhoto:
        return cls(data_url=make_data_url(data, mime), mime=mime)

    def decode(self) -> bytes:
        """Return the raw image bytes behind the data URL."""
        return decode_data_url(self.data_url)[1]

    def to_dict(self) -> dict:
        return {"dataUrl": self.data_url, "mime": self.mime}

    @classmethod
    def from_dict(cls, data: Any) -> EmbeddedPhoto | None:
        if isinstance(data, EmbeddedPhoto):
            return cls(data_url=data.data_url, mime=data.mime)
        if not isinstance(data, dict) or not data.get("dataUrl"):
            return None
        return cls(
            data_url=str(data["dataUrl"]),
            mime=str(data.get("mime") or "image/jpeg"),
        )


@dataclass
class StreamEntry:
    """One identified waste fraction and its weight."""

    name: str
    weight_kg: float = 0.0
    id: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "weightKg": self.weight_kg}

    @classmethod
    def from_dict(cls, data: Any) -> StreamEntry:
        if isinstance(data, StreamEntry):
            return cls(name=data.name, weight_kg=data.weight_kg, id=data.id)
        if not isinstance(data, dict):
            return cls(name="")
        return cls(
            name=str(data.get("name") or ""),
            weight_kg=parse_weight(data.get("weightKg")),
            id=_optional_text(data.get("id")),
        )


@dataclass
class Scan:
    """A single waste assessment: photo, total residual weight and streams.

    A scan with ``id=None`` is a draft that has not been stored yet.
    Timestamps are ISO-8601 strings with a UTC offset.
    """

    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    location: str | None = None
    notes: str | None = None
    photo: EmbeddedPhoto | None = None
    total_residual_kg: float = 0.0
    streams: list[StreamEntry] = field(default_factory=list)

    @property
    def is_draft(self) -> bool:
        return self.id is None

    @property
    def is_complete(self) -> bool:
        """Whether the scan can be saved or exported."""
        return self.total_residual_kg > 0

    @property
    def last_touched(self) -> datetime | None:
        return parse_timestamp(self.updated_at) or parse_timestamp(self.created_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "location": self.location,
            "notes": self.notes,
            "photo": self.photo.to_dict() if self.photo else None,
            "totalResidualKg": self.total_residual_kg,
            "streams": [s.to_dict() for s in self.streams],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Scan:
        streams = data.get("streams") or []
        return cls(
            id=_optional_text(data.get("id")),
            created_at=_timestamp_text(data.get("createdAt")),
            updated_at=_timestamp_text(data.get("updatedAt")),
            location=_optional_text(data.get("location")),
            notes=_optional_text(data.get("notes")),
            photo=EmbeddedPhoto.from_dict(data.get("photo")),
            total_residual_kg=parse_weight(data.get("totalResidualKg")),
            streams=[StreamEntry.from_dict(s) for s in streams],
        )


def new_draft() -> Scan:
    """Return an empty scan that is not yet stored."""
    now = utc_now().isoformat()
    return Scan(created_at=now, updated_at=now)


def make_data_url(data: bytes, mime: str = "image/jpeg") -> str:
    encoded = base64.standard_b64encode(data).decode()
    return f"data:{mime};base64,{encoded}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 data URL into its media type and raw bytes.

    Raises:
        ValidationError: If the value is not a base64 data URL.
    """
    match = _DATA_URL.match(data_url or "")
    if not match:
        raise ValidationError("Invalid image data URL")
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid image data URL: {e}") from e
    return match.group("mime"), data
