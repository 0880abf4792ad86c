"""Shareable reports (HTML and PDF) for completed scans."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from ..errors import ValidationError
from ..models import Scan, utc_now
from .html import format_date, format_datetime, render_report


def ensure_exportable(scan: Scan, action: str = "exporting") -> None:
    """Reject incomplete scans before save, export or print.

    Raises:
        ValidationError: If the total residual weight is not positive.
    """
    if not scan.is_complete:
        raise ValidationError(
            f"Please enter the total residual waste weight before {action}."
        )


def report_filename(when: datetime | None = None, suffix: str = ".html") -> str:
    when = when or utc_now()
    return f"waste-scan-report-{when.date().isoformat()}{suffix}"


def export_html(
    scan: Scan, output_path: str | Path, generated_at: datetime | None = None
) -> Path:
    """Validate ``scan`` and write its HTML report to ``output_path``."""
    ensure_exportable(scan)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_report(scan, generated_at), encoding="utf-8")
    return output_path


def export_pdf(
    scan: Scan, output_path: str | Path, generated_at: datetime | None = None
) -> Path:
    """Validate ``scan`` and write its PDF report to ``output_path``."""
    from .pdf import generate_pdf

    ensure_exportable(scan)
    return generate_pdf(scan, output_path, generated_at)


__all__ = [
    "ensure_exportable",
    "export_html",
    "export_pdf",
    "format_date",
    "format_datetime",
    "render_report",
    "report_filename",
]
