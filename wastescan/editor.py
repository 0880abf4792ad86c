"""Editing session for one scan, from draft to stored record."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from .errors import PersistenceError, ValidationError
from .ids import new_id
from .metrics import ScanSummary, summarize
from .models import EmbeddedPhoto, Scan, StreamEntry, new_draft, parse_weight
from .report import ensure_exportable, render_report
from .vision import AnalysisResult, apply_analysis, require_photo

if TYPE_CHECKING:
    from .db.scans import ScanRepository
    from .vision import VisionBackend

logger = logging.getLogger(__name__)


class EditorSession:
    """Holds the scan being edited and routes saves to the repository.

    A session starts either from a fresh draft (``new``) or from a copy of
    a stored scan (``open``). Edits only touch the session's copy until
    ``save`` is called.
    """

    def __init__(self, repository: ScanRepository, scan: Scan) -> None:
        self._repository = repository
        self._scan = scan
        self._analyzing = False

    @classmethod
    def new(cls, repository: ScanRepository) -> EditorSession:
        return cls(repository, new_draft())

    @classmethod
    def open(cls, repository: ScanRepository, scan_id: str) -> EditorSession | None:
        """Start editing a stored scan; None if the id is unknown."""
        scan = repository.get(scan_id)
        if scan is None:
            return None
        return cls(repository, scan)

    @property
    def scan(self) -> Scan:
        return self._scan

    @property
    def is_new(self) -> bool:
        return self._scan.is_draft

    @property
    def can_save(self) -> bool:
        return self._scan.is_complete

    def summary(self) -> ScanSummary:
        return summarize(self._scan)

    # -- field edits ------------------------------------------------------

    def set_location(self, location: str | None) -> None:
        self._scan.location = location or None

    def set_notes(self, notes: str | None) -> None:
        self._scan.notes = notes or None

    def set_total(self, value) -> float:
        self._scan.total_residual_kg = parse_weight(value)
        return self._scan.total_residual_kg

    def set_photo(self, photo: EmbeddedPhoto | None) -> None:
        self._scan.photo = photo

    def add_stream(self, name: str = "", weight_kg=0.0) -> StreamEntry:
        entry = StreamEntry(name=name, weight_kg=parse_weight(weight_kg), id=new_id())
        self._scan.streams.append(entry)
        return entry

    def set_stream_name(self, index: int, name: str) -> None:
        self._scan.streams[index].name = name or ""

    def set_stream_weight(self, index: int, value) -> float:
        self._scan.streams[index].weight_kg = parse_weight(value)
        return self._scan.streams[index].weight_kg

    def remove_stream(self, index: int) -> StreamEntry:
        return self._scan.streams.pop(index)

    # -- actions ----------------------------------------------------------

    def save(self) -> Scan:
        """Validate, drop unnamed stream rows and store the scan.

        Raises:
            ValidationError: If the total residual weight is not positive.
            PersistenceError: If the store refused the write. The session
                still switches to the (in-memory) stored record.
        """
        ensure_exportable(self._scan, "saving")
        self._scan.streams = [
            s for s in self._scan.streams if s.name and s.name.strip()
        ]
        try:
            if self.is_new:
                saved = self._repository.create(self._scan)
            else:
                saved = self._repository.update(self._scan.id, self._scan)
                if saved is None:
                    # Deleted elsewhere while being edited
                    saved = self._repository.create(self._scan)
        except PersistenceError as e:
            if e.result is not None:
                self._scan = e.result
            raise
        self._scan = saved
        logger.info("Saved scan %s", saved.id)
        return saved

    def render_report(self, generated_at: datetime | None = None) -> str:
        ensure_exportable(self._scan)
        return render_report(self._scan, generated_at)

    def apply_analysis(self, result: AnalysisResult) -> Scan:
        self._scan = apply_analysis(self._scan, result)
        return self._scan

    async def analyze(self, backend: VisionBackend) -> AnalysisResult:
        """Run AI analysis on the photo and apply the result.

        The draft is left untouched when the backend fails.
        """
        if self._analyzing:
            raise ValidationError("An analysis is already running.")
        photo = require_photo(self._scan.photo)
        self._analyzing = True
        try:
            result = await backend.analyze_waste(photo)
        finally:
            self._analyzing = False
        self.apply_analysis(result)
        return result
