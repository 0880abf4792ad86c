"""Tests for the scan editing session."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from wastescan.db.scans import ScanRepository
from wastescan.db.store import MemoryStore
from wastescan.editor import EditorSession
from wastescan.errors import ExternalServiceError, PersistenceError, ValidationError
from wastescan.models import EmbeddedPhoto
from wastescan.vision import AnalysisResult, SuggestedStream, VisionBackend


@pytest.fixture
def repo():
    return ScanRepository(MemoryStore())


@pytest.fixture
def photo():
    return EmbeddedPhoto.from_bytes(b"jpeg")


def _backend(result=None, error=None):
    backend = MagicMock(spec=VisionBackend)
    backend.analyze_waste = AsyncMock(return_value=result, side_effect=error)
    return backend


class TestEditing:
    def test_new_session_is_draft(self, repo):
        session = EditorSession.new(repo)
        assert session.is_new
        assert not session.can_save

    def test_live_summary(self, repo):
        session = EditorSession.new(repo)
        session.set_total("100")
        session.add_stream("Cardboard", "30")
        session.add_stream("Glass", 20)
        summary = session.summary()
        assert summary.extracted_kg == 50
        assert summary.separation_pct == 50.0

    def test_stream_edits(self, repo):
        session = EditorSession.new(repo)
        entry = session.add_stream()
        assert entry.id
        session.set_stream_name(0, "Metal")
        assert session.set_stream_weight(0, "-3") == 0.0
        assert session.scan.streams[0].name == "Metal"
        removed = session.remove_stream(0)
        assert removed.id == entry.id
        assert session.scan.streams == []

    def test_blank_text_clears_field(self, repo):
        session = EditorSession.new(repo)
        session.set_location("")
        session.set_notes("")
        assert session.scan.location is None
        assert session.scan.notes is None


class TestSave:
    def test_save_requires_total(self, repo):
        session = EditorSession.new(repo)
        with pytest.raises(ValidationError, match="before saving"):
            session.save()
        assert repo.list() == []

    def test_save_new_then_update(self, repo):
        session = EditorSession.new(repo)
        session.set_total(40)
        session.add_stream("Paper", 10)
        session.add_stream("", 5)
        saved = session.save()
        assert not session.is_new
        assert [s.name for s in saved.streams] == ["Paper"]

        session.set_notes("second pass")
        again = session.save()
        assert again.id == saved.id
        assert len(repo.list()) == 1
        assert repo.get(saved.id).notes == "second pass"

    def test_open_existing(self, repo):
        session = EditorSession.new(repo)
        session.set_total(10)
        saved = session.save()
        reopened = EditorSession.open(repo, saved.id)
        assert reopened.scan == saved
        assert EditorSession.open(repo, "missing") is None

    def test_save_after_external_delete_recreates(self, repo):
        session = EditorSession.new(repo)
        session.set_total(10)
        saved = session.save()
        repo.delete(saved.id)
        recreated = session.save()
        assert recreated.id != saved.id
        assert repo.get(recreated.id) is not None

    def test_save_failure_keeps_in_memory_record(self):
        repo = ScanRepository(MemoryStore(quota_bytes=10))
        session = EditorSession.new(repo)
        session.set_total(10)
        with pytest.raises(PersistenceError):
            session.save()
        assert not session.is_new
        assert repo.get(session.scan.id) is not None

    def test_render_report(self, repo):
        session = EditorSession.new(repo)
        with pytest.raises(ValidationError):
            session.render_report()
        session.set_total(5)
        assert "5.0 kg" in session.render_report()


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_requires_photo(self, repo):
        session = EditorSession.new(repo)
        backend = _backend(AnalysisResult())
        with pytest.raises(ValidationError, match="add a photo"):
            await session.analyze(backend)
        backend.analyze_waste.assert_not_called()

    @pytest.mark.asyncio
    async def test_applies_result(self, repo, photo):
        session = EditorSession.new(repo)
        session.set_photo(photo)
        session.add_stream("Old", 1)
        result = AnalysisResult(
            streams=[SuggestedStream("Glass", 4)], total_estimate_kg=12, notes="bottles"
        )
        await session.analyze(_backend(result))
        assert [s.name for s in session.scan.streams] == ["Glass"]
        assert session.scan.total_residual_kg == 12
        assert session.scan.notes == "AI Analysis: bottles"
        assert session.scan.photo == photo

    @pytest.mark.asyncio
    async def test_failure_leaves_draft_untouched(self, repo, photo):
        session = EditorSession.new(repo)
        session.set_photo(photo)
        session.set_total(30)
        session.add_stream("Wood", 3)
        before = session.scan.to_dict()
        with pytest.raises(ExternalServiceError):
            await session.analyze(_backend(error=ExternalServiceError("boom")))
        assert session.scan.to_dict() == before

    @pytest.mark.asyncio
    async def test_concurrent_analysis_rejected(self, repo, photo):
        session = EditorSession.new(repo)
        session.set_photo(photo)
        release = asyncio.Event()

        async def slow(_photo):
            await release.wait()
            return AnalysisResult()

        backend = MagicMock(spec=VisionBackend)
        backend.analyze_waste = slow
        first = asyncio.create_task(session.analyze(backend))
        await asyncio.sleep(0)
        with pytest.raises(ValidationError, match="already running"):
            await session.analyze(backend)
        release.set()
        await first
