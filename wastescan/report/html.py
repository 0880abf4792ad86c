"""Self-contained HTML report for a single scan."""

from __future__ import annotations

from datetime import datetime
from html import escape

from ..metrics import format_kg, format_percent, summarize
from ..models import Scan, parse_timestamp

_STYLES = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body {
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  line-height: 1.6; color: #1a2b3c; background: #f5f7fa; padding: 20px;
}
.report-container {
  max-width: 800px; margin: 0 auto; background: white;
  border-radius: 16px; box-shadow: 0 4px 24px rgba(0,0,0,0.08); overflow: hidden;
}
.report-header {
  background: linear-gradient(135deg, #00A887 0%, #008B6E 100%);
  color: white; padding: 32px; text-align: center;
}
.report-header h1 { font-size: 28px; font-weight: 600; }
.meta-section {
  display: flex; gap: 32px; padding: 24px 32px;
  background: #f8fafb; border-bottom: 1px solid #e8ecef;
}
.meta-item { display: flex; flex-direction: column; gap: 4px; }
.meta-label {
  font-size: 12px; text-transform: uppercase; letter-spacing: 0.5px; color: #6b7c8d;
}
.meta-value { font-size: 16px; font-weight: 500; }
.photo-section { padding: 24px 32px; text-align: center; }
.scan-photo { max-width: 100%; max-height: 400px; border-radius: 12px; }
.summary-section { padding: 32px; }
h2, h3 { font-size: 18px; font-weight: 600; margin-bottom: 20px; }
.summary-cards { display: grid; grid-template-columns: repeat(2, 1fr); gap: 16px; }
.summary-card { background: #f8fafb; border-radius: 12px; padding: 20px; text-align: center; }
.summary-card.highlight { background: #e8f5f1; }
.summary-card.highlight-primary { background: #00A887; color: white; }
.card-label { display: block; font-size: 13px; margin-bottom: 8px; }
.card-value { display: block; font-size: 28px; font-weight: 700; }
.warning {
  margin-top: 16px; padding: 12px 16px; background: #fff3e0;
  border-left: 4px solid #ff9800; font-size: 14px; color: #e65100;
}
.streams-section, .notes-section { padding: 0 32px 32px; }
.streams-table { width: 100%; border-collapse: collapse; }
.streams-table th, .streams-table td {
  padding: 14px 16px; text-align: left; border-bottom: 1px solid #e8ecef;
}
.streams-table th {
  font-size: 12px; text-transform: uppercase; color: #6b7c8d; background: #f8fafb;
}
.no-streams { padding: 24px; text-align: center; color: #6b7c8d; background: #f8fafb; }
.notes-section p { background: #f8fafb; padding: 16px; white-space: pre-wrap; }
.report-footer {
  padding: 24px 32px; background: #f8fafb; border-top: 1px solid #e8ecef;
  text-align: center; color: #6b7c8d; font-size: 13px;
}
.print-button { position: fixed; bottom: 24px; right: 24px; }
.print-button button {
  background: #00A887; color: white; border: none; padding: 14px 28px;
  font-size: 16px; font-weight: 600; border-radius: 30px; cursor: pointer;
}
@media print {
  body { background: white; padding: 0; }
  .report-container { box-shadow: none; border-radius: 0; }
  .no-print { display: none !important; }
  .summary-cards, .streams-table, .photo-section { break-inside: avoid; }
}
@media (max-width: 600px) {
  .meta-section { flex-direction: column; gap: 16px; }
  .summary-cards { grid-template-columns: 1fr; }
}
"""

OVER_EXTRACTED_WARNING = (
    "Note: Extracted weight exceeds total residual weight. "
    "Values may be estimates."
)
NO_STREAMS_TEXT = "No waste streams recorded"


def format_datetime(value: str | datetime | None) -> str:
    """Render a timestamp as e.g. ``19 Oct 2026, 14:05`` in local time."""
    dt = parse_timestamp(value) if isinstance(value, str) or value is None else value
    if dt is None:
        return ""
    return dt.astimezone().strftime("%d %b %Y, %H:%M")


def format_date(value: str | datetime | None) -> str:
    dt = parse_timestamp(value) if isinstance(value, str) or value is None else value
    if dt is None:
        return ""
    return dt.astimezone().strftime("%d %b %Y")


def _photo_html(scan: Scan) -> str:
    if not scan.photo:
        return ""
    return (
        '<div class="photo-section">\n'
        f'  <img src="{escape(scan.photo.data_url)}" alt="Waste scan photo" '
        'class="scan-photo">\n'
        "</div>"
    )


def _streams_html(scan: Scan) -> str:
    summary = summarize(scan)
    if not summary.shares:
        return f'<p class="no-streams">{NO_STREAMS_TEXT}</p>'
    rows = "\n".join(
        "      <tr>"
        f"<td>{escape(share.name)}</td>"
        f"<td>{format_kg(share.weight_kg)}</td>"
        f"<td>{format_percent(share.share_pct)}</td>"
        "</tr>"
        for share in summary.shares
    )
    return (
        '<table class="streams-table">\n'
        "    <thead><tr><th>Waste Stream</th><th>Weight</th><th>% of Total</th>"
        "</tr></thead>\n"
        f"    <tbody>\n{rows}\n    </tbody>\n"
        "  </table>"
    )


def render_report(scan: Scan, generated_at: datetime | None = None) -> str:
    """Render ``scan`` as a standalone HTML document.

    The photo is inlined as its data URL and all styles are embedded, so
    the file opens offline. ``generated_at`` adds a "Report created" line
    to the footer when given.
    """
    summary = summarize(scan)
    created = format_datetime(scan.created_at)

    location_html = ""
    if scan.location:
        location_html = (
            '<div class="meta-item">'
            '<span class="meta-label">Location</span>'
            f'<span class="meta-value">{escape(scan.location)}</span>'
            "</div>"
        )

    warning_html = ""
    if summary.over_extracted:
        warning_html = f'<div class="warning">{OVER_EXTRACTED_WARNING}</div>'

    notes_html = ""
    if scan.notes and scan.notes.strip():
        notes_html = (
            '<section class="notes-section">\n'
            "  <h3>Notes</h3>\n"
            f"  <p>{escape(scan.notes)}</p>\n"
            "</section>"
        )

    footer_date = ""
    if generated_at is not None:
        footer_date = f"<p>Report created: {format_datetime(generated_at)}</p>"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Waste Scan Report - {escape(created)}</title>
  <style>{_STYLES}</style>
</head>
<body>
  <div class="report-container">
    <header class="report-header">
      <h1>Waste Scan Report</h1>
    </header>

    <section class="meta-section">
      <div class="meta-item">
        <span class="meta-label">Date</span>
        <span class="meta-value">{escape(created)}</span>
      </div>
      {location_html}
    </section>

    {_photo_html(scan)}

    <section class="summary-section">
      <h2>Summary</h2>
      <div class="summary-cards">
        <div class="summary-card">
          <span class="card-label">Total Residual</span>
          <span class="card-value">{format_kg(summary.total_kg)}</span>
        </div>
        <div class="summary-card highlight">
          <span class="card-label">Extractable</span>
          <span class="card-value">{format_kg(summary.extracted_kg)}</span>
        </div>
        <div class="summary-card highlight-primary">
          <span class="card-label">Separation Potential</span>
          <span class="card-value">{format_percent(summary.separation_pct)}</span>
        </div>
        <div class="summary-card">
          <span class="card-label">Remaining Residual</span>
          <span class="card-value">{format_kg(summary.remaining_kg)}</span>
        </div>
      </div>
      {warning_html}
    </section>

    <section class="streams-section">
      <h2>Waste Streams Breakdown</h2>
      {_streams_html(scan)}
    </section>

    {notes_html}

    <footer class="report-footer">
      <p>Generated by Waste Scan</p>
      {footer_date}
    </footer>
  </div>

  <div class="print-button no-print">
    <button onclick="window.print()">Print / Save as PDF</button>
  </div>
</body>
</html>
"""
