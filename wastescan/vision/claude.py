"""Claude API vision backend for waste analysis."""

from __future__ import annotations

import base64
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


class ClaudeVisionBackend(VisionBackend):
    """Analyze waste photos using Claude's vision capability."""

    def __init__(
        self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929"
    ) -> None:
        self._api_key = api_key
        self._model = model

    async def analyze_waste(self, photo: EmbeddedPhoto) -> AnalysisResult:
        text = await self._ask(ANALYSIS_PROMPT, require_photo(photo), 4096)
        return parse_analysis(text)

    async def classify_waste(
        self, photo: EmbeddedPhoto, location: str
    ) -> ClassificationResult:
        location = require_location(location)
        prompt = CLASSIFICATION_PROMPT.format(location=location)
        text = await self._ask(prompt, require_photo(photo), 2048)
        return parse_classification(text)

    async def _ask(self, prompt: str, photo: EmbeddedPhoto, max_tokens: int) -> str:
        if not self._api_key:
            raise ValidationError(
                "Anthropic API key is not configured. "
                "Check the config file or the ANTHROPIC_API_KEY variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        media_type, data = decode_data_url(photo.data_url)
        content: list[dict] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": base64.standard_b64encode(data).decode(),
                },
            },
            {"type": "text", "text": prompt},
        ]

        logger.info("Calling Claude model=%s (%d image bytes)", self._model, len(data))
        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        try:
            response = await client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": content}],
            )
        except Exception as e:
            raise ExternalServiceError(f"Claude request failed: {e}") from e

        if getattr(response, "stop_reason", None) == "max_tokens":
            raise ExternalServiceError("Response was truncated. Please try again.")
        if not response.content:
            raise ExternalServiceError("No response from API")
        return response.content[0].text
