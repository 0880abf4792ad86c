"""Gemini API vision backend for waste analysis."""

from __future__ import annotations

import logging

from ..errors import ExternalServiceError, ValidationError
from ..models import EmbeddedPhoto, decode_data_url
from . import (
    ANALYSIS_PROMPT,
    CLASSIFICATION_PROMPT,
    AnalysisResult,
    ClassificationResult,
    VisionBackend,
    parse_analysis,
    parse_classification,
    require_location,
    require_photo,
)

logger = logging.getLogger(__name__)

_ANALYSIS_GENERATION = {
    "temperature": 0.2,
    "top_k": 32,
    "top_p": 0.8,
    "max_output_tokens": 8192,
    "response_mime_type": "application/json",
}

_CLASSIFICATION_GENERATION = {
    "temperature": 0.3,
    "top_k": 32,
    "top_p": 0.8,
    "max_output_tokens": 2048,
}


def _import_genai():
    try:
        import google.generativeai as genai
    except ImportError:
        raise ImportError(
            "google-generativeai SDK is required: pip install google-generativeai"
        ) from None
    return genai


class GeminiVisionBackend(VisionBackend):
    """Analyze waste photos using Google Gemini's vision capability."""

    def __init__(self, api_key: str = "", model: str = "gemini-2.5-flash") -> None:
        self._api_key = api_key
        self._model = model

    async def analyze_waste(self, photo: EmbeddedPhoto) -> AnalysisResult:
        text = await self._generate(
            ANALYSIS_PROMPT, require_photo(photo), _ANALYSIS_GENERATION
        )
        return parse_analysis(text)

    async def classify_waste(
        self, photo: EmbeddedPhoto, location: str
    ) -> ClassificationResult:
        location = require_location(location)
        prompt = CLASSIFICATION_PROMPT.format(location=location)
        text = await self._generate(
            prompt, require_photo(photo), _CLASSIFICATION_GENERATION
        )
        return parse_classification(text)

    async def _generate(
        self, prompt: str, photo: EmbeddedPhoto, generation_config: dict
    ) -> str:
        if not self._api_key:
            raise ValidationError(
                "Gemini API key is not configured. "
                "Run 'wastescan settings set-key' or set GEMINI_API_KEY."
            )

        mime_type, data = decode_data_url(photo.data_url)
        genai = _import_genai()
        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        logger.info("Calling Gemini model=%s (%d image bytes)", self._model, len(data))
        try:
            response = await model.generate_content_async(
                [prompt, {"mime_type": mime_type, "data": data}],
                generation_config=generation_config,
            )
        except Exception as e:
            raise ExternalServiceError(f"Gemini request failed: {e}") from e

        candidates = getattr(response, "candidates", None) or []
        if candidates:
            reason = getattr(candidates[0], "finish_reason", None)
            if getattr(reason, "name", reason) == "MAX_TOKENS":
                raise ExternalServiceError(
                    "Response was truncated. Please try again with a simpler image."
                )

        try:
            text = response.text
        except ValueError as e:
            # Raised by the SDK when the candidate has no text part
            raise ExternalServiceError("No response from API") from e
        if not text:
            raise ExternalServiceError("No response from API")
        return text


def verify_api_key(api_key: str | None) -> bool:
    """Return True if Gemini accepts ``api_key``. Never raises."""
    if not api_key:
        return False
    try:
        genai = _import_genai()
        genai.configure(api_key=api_key)
        next(iter(genai.list_models()), None)
    except Exception:
        logger.info("Gemini API key check failed", exc_info=True)
        return False
    return True
