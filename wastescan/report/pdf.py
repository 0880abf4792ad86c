"""PDF generation for scan reports using ReportLab."""

from __future__ import annotations

import io
import logging
from datetime import datetime
from html import escape
from pathlib import Path

from ..errors import ValidationError
from ..metrics import format_kg, format_percent, summarize
from ..models import Scan
from .html import NO_STREAMS_TEXT, OVER_EXTRACTED_WARNING, format_datetime

logger = logging.getLogger(__name__)

_ACCENT = "#00A887"


def generate_pdf(
    scan: Scan,
    output_path: str | Path,
    generated_at: datetime | None = None,
) -> Path:
    """Generate a printable PDF report for a scan.

    Args:
        scan: The scan to render.
        output_path: Where to save the PDF file.
        generated_at: Optional creation time printed in the footer.

    Returns:
        Path to the generated PDF file.

    Raises:
        ImportError: If reportlab is not installed.
    """
    try:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
        from reportlab.lib.units import mm
        from reportlab.lib.utils import ImageReader
        from reportlab.platypus import (
            Image,
            Paragraph,
            SimpleDocTemplate,
            Spacer,
            Table,
            TableStyle,
        )
    except ImportError:
        raise ImportError("reportlab is required: pip install reportlab")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title="Waste Scan Report",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Title"],
        fontSize=20,
        leading=26,
        textColor=colors.HexColor(_ACCENT),
    )
    subtitle_style = ParagraphStyle(
        "ReportSubtitle",
        parent=styles["Normal"],
        fontSize=11,
        leading=15,
        textColor=colors.grey,
    )
    heading_style = ParagraphStyle(
        "ReportHeading",
        parent=styles["Heading2"],
        fontSize=14,
        leading=20,
        spaceAfter=3 * mm,
    )
    body_style = ParagraphStyle(
        "ReportBody",
        parent=styles["Normal"],
        fontSize=10,
        leading=14,
    )
    warning_style = ParagraphStyle(
        "ReportWarning",
        parent=body_style,
        textColor=colors.HexColor("#E65100"),
        backColor=colors.HexColor("#FFF3E0"),
        borderPadding=6,
    )

    summary = summarize(scan)
    elements: list = []

    elements.append(Paragraph("Waste Scan Report", title_style))
    meta = f"Date: {format_datetime(scan.created_at)}"
    if scan.location:
        meta += f" &nbsp;&nbsp; Location: {escape(scan.location, quote=False)}"
    elements.append(Paragraph(meta, subtitle_style))
    elements.append(Spacer(1, 6 * mm))

    if scan.photo:
        try:
            data = scan.photo.decode()
            width, height = ImageReader(io.BytesIO(data)).getSize()
            max_w, max_h = 120 * mm, 90 * mm
            scale = min(max_w / width, max_h / height)
            elements.append(
                Image(io.BytesIO(data), width=width * scale, height=height * scale)
            )
            elements.append(Spacer(1, 6 * mm))
        except (ValidationError, OSError, ValueError):
            logger.warning("Skipping unreadable photo in PDF for scan %s", scan.id)

    elements.append(Paragraph("Summary", heading_style))
    summary_table = Table(
        [
            ["Total Residual", format_kg(summary.total_kg)],
            ["Extractable", format_kg(summary.extracted_kg)],
            ["Separation Potential", format_percent(summary.separation_pct)],
            ["Remaining Residual", format_kg(summary.remaining_kg)],
        ],
        colWidths=[60 * mm, 40 * mm],
    )
    summary_table.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("BACKGROUND", (0, 2), (-1, 2), colors.HexColor("#E8F5F1")),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    elements.append(summary_table)

    if summary.over_extracted:
        elements.append(Spacer(1, 4 * mm))
        elements.append(Paragraph(OVER_EXTRACTED_WARNING, warning_style))

    elements.append(Spacer(1, 6 * mm))
    elements.append(Paragraph("Waste Streams Breakdown", heading_style))
    if summary.shares:
        table_data = [["Waste Stream", "Weight", "% of Total"]]
        for share in summary.shares:
            table_data.append([
                Paragraph(escape(share.name, quote=False), body_style),
                format_kg(share.weight_kg),
                format_percent(share.share_pct),
            ])
        t = Table(table_data, colWidths=[80 * mm, 40 * mm, 40 * mm])
        t.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(_ACCENT)),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (0, 0), (-1, -1), "LEFT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F5F5F5")]),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ]))
        elements.append(t)
    else:
        elements.append(Paragraph(NO_STREAMS_TEXT, body_style))

    if scan.notes and scan.notes.strip():
        elements.append(Spacer(1, 6 * mm))
        elements.append(Paragraph("Notes", heading_style))
        for line in scan.notes.splitlines():
            elements.append(Paragraph(escape(line, quote=False) or "&nbsp;", body_style))

    elements.append(Spacer(1, 10 * mm))
    footer = "Generated by Waste Scan"
    if generated_at is not None:
        footer += f" - Report created: {format_datetime(generated_at)}"
    elements.append(Paragraph(footer, subtitle_style))

    doc.build(elements)
    return output_path
