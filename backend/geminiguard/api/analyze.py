"""Request-scoped analysis endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from geminiguard.config import Settings, get_settings
from geminiguard.dependencies import get_analysis_pipeline
from geminiguard.errors import ValidationError
from geminiguard.models.analysis import TextAnalysisRequest, wants_voice
from geminiguard.pipeline.analysis import AnalysisPipeline
from geminiguard.uploads import read_multipart

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/analyze")
async def analyze_upload(
    request: Request,
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Analyze an uploaded image or document, then summarise it.

    Multipart fields: ``file`` (required), ``prompt`` and ``returnVoice``
    (optional). The upload is parsed in memory and discarded with the
    request.
    """
    form = await read_multipart(request, settings.max_upload_bytes)
    upload = form.files.get("file")
    if upload is None or not upload.data:
        raise ValidationError("No file uploaded")

    result = await pipeline.analyze_multimodal(
        upload.data,
        upload.content_type,
        form.fields.get("prompt"),
        return_voice=wants_voice(form.fields.get("returnVoice")),
    )
    return result.to_wire()


@router.post("/analyze-text")
async def analyze_text(
    body: TextAnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_analysis_pipeline),
) -> dict[str, Any]:
    """Analyze free text with the privacy-focused text prompt."""
    result = await pipeline.analyze_text(
        body.text,
        body.prompt,
        return_voice=wants_voice(body.return_voice),
    )
    return result.to_wire()
