"""Dependency injection providers for FastAPI."""

from fastapi import Depends, HTTPException
from starlette.requests import HTTPConnection

from geminiguard.config import Settings, get_settings
from geminiguard.inference import InferenceClient
from geminiguard.pipeline.analysis import AnalysisPipeline
from geminiguard.prompts.loader import PromptProfile, load_profile


def get_inference_client(connection: HTTPConnection) -> InferenceClient:
    """Return the shared inference client created during app startup."""
    client = getattr(connection.app.state, "inference_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Inference client unavailable")
    return client


def get_prompt_profile(settings: Settings = Depends(get_settings)) -> PromptProfile:
    return load_profile(settings.prompt_profile)


def get_analysis_pipeline(
    client: InferenceClient = Depends(get_inference_client),
    profile: PromptProfile = Depends(get_prompt_profile),
) -> AnalysisPipeline:
    """A fresh pipeline per request; it holds no data between calls."""
    return AnalysisPipeline(client, profile)
