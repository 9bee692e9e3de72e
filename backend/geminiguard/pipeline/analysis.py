"""Request-scoped analysis pipeline behind the HTTP endpoints.

Nothing is kept between calls: the uploaded bytes and the model output live
only in local variables for the duration of one request.
"""

from __future__ import annotations

import logging

from geminiguard.errors import ValidationError
from geminiguard.inference.base import InferenceClient
from geminiguard.models.analysis import (
    AnalysisResult,
    PrivacyMetadata,
    TextAnalysisResult,
    VoiceStatus,
)
from geminiguard.prompts.builders import (
    build_summary_parts,
    build_text_analysis_parts,
    build_vision_parts,
)
from geminiguard.prompts.loader import PromptProfile

logger = logging.getLogger(__name__)

VISION_MAX_TOKENS = 500
SUMMARY_MAX_TOKENS = 150
TEXT_MAX_TOKENS = 500

COMPLIANCE_TAGS = ["HIPAA-safe", "GDPR-compliant"]


class AnalysisPipeline:
    """Runs the vision -> summary and text analysis flows for one request."""

    def __init__(self, client: InferenceClient, profile: PromptProfile) -> None:
        self._client = client
        self._profile = profile

    async def analyze_multimodal(
        self,
        file_bytes: bytes | None,
        mime_type: str,
        prompt: str | None = None,
        *,
        return_voice: bool = False,
    ) -> AnalysisResult:
        """Analyze an uploaded file, then summarise the analysis.

        Raises:
            ValidationError: If no file content was supplied.
            UpstreamError: If either model call fails.
        """
        if not file_bytes:
            raise ValidationError("No file uploaded")

        logger.info("Analyzing upload: %d bytes (%s)", len(file_bytes), mime_type)
        analysis = await self._client.infer(
            build_vision_parts(self._profile, file_bytes, mime_type, prompt or None),
            model="vision",
            max_output_tokens=VISION_MAX_TOKENS,
        )
        logger.info("Vision analysis complete, generating summary")

        summary = await self._client.infer(
            build_summary_parts(self._profile, analysis),
            model="chat",
            max_output_tokens=SUMMARY_MAX_TOKENS,
            system_instruction=self._profile.summary_system,
        )
        logger.info("Analysis pipeline finished, upload discarded")

        return AnalysisResult(
            analysis=analysis,
            summary=summary,
            privacy=PrivacyMetadata(compliance=list(COMPLIANCE_TAGS)),
            voice=self._voice_status(return_voice),
        )

    async def analyze_text(
        self,
        text: str | None,
        prompt: str | None = None,
        *,
        return_voice: bool = False,
    ) -> TextAnalysisResult:
        """Analyze free text with a single model call.

        Raises:
            ValidationError: If ``text`` is absent or blank.
            UpstreamError: If the model call fails.
        """
        if not text or not text.strip():
            raise ValidationError("No text provided")

        logger.info("Analyzing text: %d chars", len(text))
        analysis = await self._client.infer(
            build_text_analysis_parts(self._profile, text, prompt or None),
            model="chat",
            max_output_tokens=TEXT_MAX_TOKENS,
            system_instruction=self._profile.text_system,
        )
        logger.info("Text analysis finished")

        return TextAnalysisResult(
            analysis=analysis,
            privacy=PrivacyMetadata(),
            voice=self._voice_status(return_voice),
        )

    @staticmethod
    def _voice_status(return_voice: bool) -> VoiceStatus | None:
        if not return_voice:
            return None
        logger.info("Voice response requested; speech synthesis is not offered")
        return VoiceStatus()
