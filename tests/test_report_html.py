"""Tests for HTML report rendering and export."""

from datetime import datetime, timezone

import pytest

from wastescan.errors import ValidationError
from wastescan.models import EmbeddedPhoto, Scan, StreamEntry
from wastescan.report import (
    ensure_exportable,
    export_html,
    format_datetime,
    render_report,
    report_filename,
)
from wastescan.report.html import NO_STREAMS_TEXT, OVER_EXTRACTED_WARNING


def _scan(**kwargs) -> Scan:
    defaults = dict(
        id="s1",
        created_at="2025-03-14T09:30:00+00:00",
        updated_at="2025-03-14T09:30:00+00:00",
        total_residual_kg=100.0,
        streams=[
            StreamEntry(name="Cardboard", weight_kg=30, id="e1"),
            StreamEntry(name="Plastics (hard)", weight_kg=20, id="e2"),
        ],
    )
    defaults.update(kwargs)
    return Scan(**defaults)


class TestRenderReport:
    def test_summary_values(self):
        html = render_report(_scan())
        assert html.startswith("<!DOCTYPE html>")
        assert "Waste Scan Report" in html
        assert "100.0 kg" in html
        assert "50.0 kg" in html
        assert "50.0%" in html
        assert "30.0%" in html
        assert "Plastics (hard)" in html
        assert OVER_EXTRACTED_WARNING not in html

    def test_deterministic_without_generated_at(self):
        scan = _scan()
        assert render_report(scan) == render_report(scan)
        assert "Report created" not in render_report(scan)

    def test_generated_at_in_footer(self):
        when = datetime(2025, 3, 15, 8, 0, tzinfo=timezone.utc)
        html = render_report(_scan(), generated_at=when)
        assert f"Report created: {format_datetime(when)}" in html
        assert "Generated by Waste Scan" in html

    def test_over_extracted_warning(self):
        scan = _scan(streams=[StreamEntry(name="Glass", weight_kg=110, id="e1")])
        assert OVER_EXTRACTED_WARNING in render_report(scan)

    def test_no_streams_placeholder(self):
        html = render_report(_scan(streams=[]))
        assert NO_STREAMS_TEXT in html
        assert "streams-table\"" not in html

    def test_notes_section_only_when_present(self):
        assert "notes-section\"" not in render_report(_scan(notes="  "))
        assert "Bin was overflowing" in render_report(_scan(notes="Bin was overflowing"))

    def test_location_and_escaping(self):
        html = render_report(
            _scan(location="<Depot & Co>", notes="<script>alert(1)</script>")
        )
        assert "&lt;Depot &amp; Co&gt;" in html
        assert "<script>" not in html

    def test_photo_inlined(self):
        photo = EmbeddedPhoto.from_bytes(b"jpeg", "image/jpeg")
        html = render_report(_scan(photo=photo))
        assert photo.data_url in html

    def test_no_photo_section_without_photo(self):
        assert "scan-photo" not in render_report(_scan()).split("</style>")[1]


class TestExport:
    def test_ensure_exportable_requires_total(self):
        with pytest.raises(ValidationError, match="total residual waste weight"):
            ensure_exportable(_scan(total_residual_kg=0))

    def test_export_html(self, tmp_path):
        path = export_html(_scan(), tmp_path / "out" / "report.html")
        assert path.exists()
        assert "Waste Scan Report" in path.read_text(encoding="utf-8")

    def test_export_rejects_incomplete(self, tmp_path):
        with pytest.raises(ValidationError):
            export_html(_scan(total_residual_kg=0), tmp_path / "r.html")
        assert not (tmp_path / "r.html").exists()

    def test_report_filename(self):
        when = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)
        assert report_filename(when) == "waste-scan-report-2025-03-14.html"
        assert report_filename(when, ".pdf") == "waste-scan-report-2025-03-14.pdf"
