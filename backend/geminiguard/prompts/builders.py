"""Assemble inference parts from prompts, uploads and live session context."""

from __future__ import annotations

from typing import Sequence

from geminiguard.inference.base import BinaryPart, Part, TextPart
from geminiguard.live.session import ImageContext, Turn
from geminiguard.prompts.loader import PromptProfile


def format_transcript(turns: Sequence[Turn], limit: int = 0) -> str:
    """Render the most recent turns as ``ROLE: text`` lines, oldest first."""
    recent = turns[-limit:] if limit else turns
    return "\n".join(f"{turn.role.value.upper()}: {turn.text}" for turn in recent)


def _image_parts(image: ImageContext | None) -> list[Part]:
    if image is None:
        return []
    return [BinaryPart(data=image.data, mime_type=image.mime_type)]


def _with_history(text: str, history: Sequence[Turn] | None) -> str:
    if not history:
        return text
    return f"Conversation so far:\n{format_transcript(history)}\n\n{text}"


def build_vision_parts(profile: PromptProfile, data: bytes, mime_type: str, prompt: str | None = None) -> list[Part]:
    """First analysis pass: instruction followed by the uploaded file."""
    return [
        TextPart(prompt or profile.vision_prompt),
        BinaryPart(data=data, mime_type=mime_type),
    ]


def build_summary_parts(profile: PromptProfile, analysis: str) -> list[Part]:
    """Second analysis pass: summarise the vision output."""
    return [TextPart(f"{profile.summary_instruction}:\n\n{analysis}")]


def build_text_analysis_parts(profile: PromptProfile, text: str, prompt: str | None = None) -> list[Part]:
    instruction = prompt or profile.text_instruction
    return [TextPart(f"{instruction}:\n\n{text}")]


def build_live_text_parts(
    profile: PromptProfile,
    text: str,
    image: ImageContext | None,
    history: Sequence[Turn] | None = None,
) -> list[Part]:
    """Live text turn: optional image, then the instruction prefix and the question.

    ``history`` holds earlier turns and is only passed when transcript replay
    is enabled.
    """
    body = _with_history(f"User: {text}", history)
    return _image_parts(image) + [TextPart(f"{profile.live_text_prefix}\n\n{body}")]


def build_live_audio_parts(
    transcript: str,
    image: ImageContext | None,
    history: Sequence[Turn] | None = None,
) -> list[Part]:
    """Live spoken turn: optional image, then the transcribed utterance if any."""
    parts = _image_parts(image)
    if transcript:
        parts.append(TextPart(_with_history(transcript, history)))
    return parts
