"""Separation metrics computed from a scan's total and stream weights.

Every view (list, editor summary, report) goes through these functions so
the numbers agree everywhere. Values stay at full precision; only
``format_kg`` and ``format_percent`` round for display.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .models import Scan, StreamEntry


def extracted(scan: Scan) -> float:
    """Sum of all stream weights in kg."""
    return sum(s.weight_kg or 0.0 for s in scan.streams)


def remaining(scan: Scan) -> float:
    """Residual weight left after separation, never below zero."""
    return max(0.0, (scan.total_residual_kg or 0.0) - extracted(scan))


def separation_percent(scan: Scan) -> float:
    """Extracted weight as a percentage of the total residual weight."""
    total = scan.total_residual_kg or 0.0
    if total <= 0:
        return 0.0
    return extracted(scan) / total * 100


def stream_share_percent(scan: Scan, stream: StreamEntry) -> float:
    """One stream's weight as a percentage of the total residual weight."""
    total = scan.total_residual_kg or 0.0
    if total <= 0:
        return 0.0
    return (stream.weight_kg or 0.0) / total * 100


def is_over_extracted(scan: Scan) -> bool:
    """True when the streams add up to more than a set total."""
    total = scan.total_residual_kg or 0.0
    return total > 0 and extracted(scan) > total


@dataclass
class StreamShare:
    name: str
    weight_kg: float
    share_pct: float


@dataclass
class ScanSummary:
    """All derived figures for one scan."""

    total_kg: float = 0.0
    extracted_kg: float = 0.0
    remaining_kg: float = 0.0
    separation_pct: float = 0.0
    over_extracted: bool = False
    shares: list[StreamShare] = field(default_factory=list)


def summarize(scan: Scan) -> ScanSummary:
    """Compute every metric for ``scan`` in one pass.

    Streams without a name are left out of ``shares`` but still count
    towards the extracted weight, matching the live editor panel.
    """
    return ScanSummary(
        total_kg=scan.total_residual_kg or 0.0,
        extracted_kg=extracted(scan),
        remaining_kg=remaining(scan),
        separation_pct=separation_percent(scan),
        over_extracted=is_over_extracted(scan),
        shares=[
            StreamShare(
                name=s.name,
                weight_kg=s.weight_kg or 0.0,
                share_pct=stream_share_percent(scan, s),
            )
            for s in scan.streams
            if s.name
        ],
    )


def format_kg(value: float | None, decimals: int = 1) -> str:
    if value is None or math.isnan(value):
        value = 0.0
    return f"{value:.{decimals}f} kg"


def format_percent(value: float | None, decimals: int = 1) -> str:
    if value is None or math.isnan(value):
        value = 0.0
    return f"{value:.{decimals}f}%"
