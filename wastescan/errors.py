"""Exception types shared across the waste scan package."""

from __future__ import annotations

from typing import Any


class WasteScanError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(WasteScanError, ValueError):
    """Caller input rejected before any state was changed."""


class PersistenceError(WasteScanError):
    """The persistence delegate refused a write.

    The in-memory state already holds the change, so ``result`` carries
    whatever the failed operation would have returned.
    """

    def __init__(self, message: str, result: Any = None) -> None:
        super().__init__(message)
        self.result = result


class QuotaExceededError(PersistenceError):
    """The store has no room left for the document."""


class MalformedStoredDataError(WasteScanError):
    """A stored document could not be parsed or migrated."""


class ExternalServiceError(WasteScanError):
    """The AI collaborator failed or returned an unusable response."""


class NewerSchemaError(WasteScanError):
    """The stored collection was written by a newer release and is read-only."""

    def __init__(self, stored_version: int, supported_version: int) -> None:
        super().__init__(
            f"Stored scans use schema v{stored_version}; this release writes "
            f"v{supported_version} and leaves them read-only"
        )
        self.stored_version = stored_version
        self.supported_version = supported_version
