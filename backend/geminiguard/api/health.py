"""Health and model metadata endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from geminiguard.config import Settings, get_settings

router = APIRouter()

CAPABILITIES = ["vision", "text", "live", "audio-pending"]


@router.get("/health")
async def health_check(
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Return static service and capability metadata."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "privacy": "zero-retention",
        "capabilities": CAPABILITIES,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/models")
async def list_models(
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Return the configured model identifiers."""
    provider = (
        "Google Gemini (OpenAI-compatible API)"
        if settings.inference_backend == "openai"
        else "Google Gemini"
    )
    return {
        "vision": settings.vision_model,
        "chat": settings.chat_model,
        "audio": "TTS pending",
        "provider": provider,
        "privacy": "zero-retention",
    }
