"""AI image analysis: result types, response parsing and backend factory."""

from __future__ import annotations

import copy
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..errors import ExternalServiceError, ValidationError
from ..ids import new_id
from ..models import STREAM_PRESETS, EmbeddedPhoto, Scan, StreamEntry, parse_weight

if TYPE_CHECKING:
    from ..config import WasteScanConfig

logger = logging.getLogger(__name__)

_NUMERIC_START = re.compile(r"^\s*[+-]?(?:\d|\.\d)")

ANALYSIS_PROMPT = f"""\
Analyze this waste image. Identify waste streams and estimate weights in kg.

Return JSON only: {{"streams":[{{"name":"...","weightKg":0.0}}],"totalEstimateKg":0.0,"confidence":"low|medium|high","notes":"..."}}

Categories: {", ".join(STREAM_PRESETS)}

Be conservative with estimates. Only include clearly visible streams.
"""

CLASSIFICATION_PROMPT = """\
Analyze this waste image and provide a warm, friendly classification with \
occasional family-friendly humor.

Context: Location: {location} (for business/organization)

Write as a knowledgeable, upbeat friend who makes recycling education fun. \
Keep it professional and safe-for-work.

Provide your response in markdown format, starting with:

**Bin:** [Bin name] [Emoji for bin color - use 🟫 for brown, 🟦 for blue, \
🟩 for green, ⚫ for black, 🟨 for yellow, etc.]

**Why:** One friendly, simple sentence explaining why this waste should go \
into that bin.

**Reduce Impact:** Brief, upbeat suggestion on how to reduce environmental \
impact (reuse, refuse, reduce, recycle alternatives).

Keep it concise (2-3 sentences total). If you cannot clearly identify the \
waste, say so in a friendly way.
"""


@dataclass
class SuggestedStream:
    name: str
    weight_kg: float = 0.0


@dataclass
class AnalysisResult:
    """Streams and total weight suggested for a photo."""

    streams: list[SuggestedStream] = field(default_factory=list)
    total_estimate_kg: float = 0.0
    confidence: str | None = None
    notes: str | None = None


@dataclass
class ClassificationResult:
    """Free-text bin advice in markdown."""

    markdown: str


class VisionBackend(ABC):
    """Abstract base for waste photo analysis services."""

    @abstractmethod
    async def analyze_waste(self, photo: EmbeddedPhoto) -> AnalysisResult:
        """Suggest waste streams and weights for a photo.

        Raises:
            ValidationError: If the backend is not configured or the photo
                is missing.
            ExternalServiceError: If the call fails or the response is
                unusable.
        """
        ...

    @abstractmethod
    async def classify_waste(
        self, photo: EmbeddedPhoto, location: str
    ) -> ClassificationResult:
        """Advise which bin the photographed waste belongs in at ``location``."""
        ...


def create_backend(
    config: WasteScanConfig, gemini_api_key: str | None = None
) -> VisionBackend:
    """Create a vision backend based on configuration.

    ``gemini_api_key`` (the key kept in the settings store) wins over the
    configured Gemini key. It is ignored by the other backends.
    """
    backend_name = config.vision.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiVisionBackend

            return GeminiVisionBackend(
                api_key=gemini_api_key or config.vision.gemini.api_key,
                model=config.vision.gemini.model,
            )
        case "claude":
            from .claude import ClaudeVisionBackend

            return ClaudeVisionBackend(
                api_key=config.vision.claude.api_key,
                model=config.vision.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown vision backend: {backend_name!r} "
                f"(choose gemini or claude)"
            )


def require_photo(photo: EmbeddedPhoto | None) -> EmbeddedPhoto:
    if photo is None or not photo.data_url:
        raise ValidationError("Please add a photo first.")
    return photo


def require_location(location: str | None) -> str:
    if not location or not location.strip():
        raise ValidationError("Location (town/region) is required")
    return location.strip()


def strip_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def _is_weight(value) -> bool:
    """None, numbers and strings with a numeric prefix count as weights."""
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return bool(_NUMERIC_START.match(value))
    return False


def parse_analysis(text: str) -> AnalysisResult:
    """Validate and normalize a JSON analysis response.

    Weights are coerced to non-negative numbers, unnamed streams are
    dropped, and a missing total falls back to the sum of the streams.

    Raises:
        ExternalServiceError: If the text is not JSON, has no ``streams``
            array, or carries a weight that is not a number.
    """
    try:
        data = json.loads(strip_fences(text))
    except ValueError as e:
        logger.warning("Unparseable analysis response: %.200s", text)
        raise ExternalServiceError("Failed to parse API response as JSON") from e

    if not isinstance(data, dict) or not isinstance(data.get("streams"), list):
        raise ExternalServiceError("Invalid response structure: no streams array")

    streams: list[SuggestedStream] = []
    for item in data["streams"]:
        if not isinstance(item, dict):
            raise ExternalServiceError(f"Invalid stream entry: {item!r}")
        if not _is_weight(item.get("weightKg")):
            raise ExternalServiceError(
                f"Non-numeric weight for stream {item.get('name')!r}: "
                f"{item.get('weightKg')!r}"
            )
        name = str(item.get("name") or "").strip()
        if not name:
            continue
        streams.append(
            SuggestedStream(name=name, weight_kg=parse_weight(item.get("weightKg")))
        )

    total = parse_weight(data.get("totalEstimateKg")) or sum(
        s.weight_kg for s in streams
    )
    confidence = data.get("confidence")
    notes = data.get("notes")
    return AnalysisResult(
        streams=streams,
        total_estimate_kg=total,
        confidence=str(confidence) if confidence else None,
        notes=str(notes) if notes else None,
    )


def parse_classification(text: str) -> ClassificationResult:
    if not text or not text.strip():
        raise ExternalServiceError("No response from API")
    return ClassificationResult(markdown=strip_fences(text))


def apply_analysis(scan: Scan, result: AnalysisResult) -> Scan:
    """Return a copy of ``scan`` with the analysis applied.

    Suggested streams replace the current list wholesale (no merge) when
    there is at least one; a positive estimate replaces the total. AI
    notes fill the notes field only when it is empty.
    """
    updated = copy.deepcopy(scan)
    if result.total_estimate_kg > 0:
        updated.total_residual_kg = result.total_estimate_kg
    if result.streams:
        updated.streams = [
            StreamEntry(name=s.name, weight_kg=parse_weight(s.weight_kg), id=new_id())
            for s in result.streams
            if s.name
        ]
    if result.notes and not updated.notes:
        updated.notes = f"AI Analysis: {result.notes}"
    return updated
