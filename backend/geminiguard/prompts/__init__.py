"""Prompt profiles and prompt-assembly helpers."""

from .builders import (
    build_live_audio_parts,
    build_live_text_parts,
    build_summary_parts,
    build_text_analysis_parts,
    build_vision_parts,
    format_transcript,
)
from .loader import PromptProfile, available_profiles, load_profile

__all__ = [
    "PromptProfile",
    "available_profiles",
    "build_live_audio_parts",
    "build_live_text_parts",
    "build_summary_parts",
    "build_text_analysis_parts",
    "build_vision_parts",
    "format_transcript",
    "load_profile",
]
