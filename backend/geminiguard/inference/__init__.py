"""Remote inference clients - Gemini native and OpenAI-compatible backends."""

from geminiguard.config import Settings

from .base import BinaryPart, InferenceClient, ModelRole, Part, TextPart
from .gemini import GeminiInferenceClient
from .openai_compat import OpenAICompatibleInferenceClient


def build_inference_client(settings: Settings) -> InferenceClient:
    """Create the inference client selected by ``settings.inference_backend``."""
    if settings.inference_backend == "openai":
        return OpenAICompatibleInferenceClient(
            api_key=settings.gemini_api_key,
            base_url=settings.openai_base_url,
            vision_model=settings.vision_model,
            chat_model=settings.chat_model,
            timeout=settings.request_timeout_seconds,
        )
    return GeminiInferenceClient(
        api_key=settings.gemini_api_key,
        vision_model=settings.vision_model,
        chat_model=settings.chat_model,
        timeout=settings.request_timeout_seconds,
    )


__all__ = [
    "BinaryPart",
    "GeminiInferenceClient",
    "InferenceClient",
    "ModelRole",
    "OpenAICompatibleInferenceClient",
    "Part",
    "TextPart",
    "build_inference_client",
]
