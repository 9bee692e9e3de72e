"""Gemini through its OpenAI-compatible endpoint, using the OpenAI SDK."""

from __future__ import annotations

import base64
import logging
from typing import Any

from openai import AsyncOpenAI

from geminiguard.inference.base import BinaryPart, InferenceClient, Part

logger = logging.getLogger(__name__)


def to_data_uri(part: BinaryPart) -> str:
    encoded = base64.b64encode(part.data).decode("ascii")
    return f"data:{part.mime_type};base64,{encoded}"


def build_chat_messages(parts: list[Part], system_instruction: str | None) -> list[dict[str, Any]]:
    """Build a chat-completions message list from parts."""
    content: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, BinaryPart):
            content.append({"type": "image_url", "image_url": {"url": to_data_uri(part)}})
        else:
            content.append({"type": "text", "text": part.text})

    messages: list[dict[str, Any]] = []
    if system_instruction:
        messages.append({"role": "system", "content": system_instruction})
    messages.append({"role": "user", "content": content})
    return messages


class OpenAICompatibleInferenceClient(InferenceClient):
    """Calls an OpenAI-compatible chat completions API."""

    provider = "openai-compatible"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        vision_model: str,
        chat_model: str,
        timeout: float,
        client: AsyncOpenAI | None = None,
    ) -> None:
        super().__init__(vision_model, chat_model, timeout)
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )
        logger.info("OpenAICompatibleInferenceClient initialised (base_url=%s)", base_url)

    async def _generate(
        self,
        parts: list[Part],
        *,
        model_name: str,
        max_output_tokens: int | None,
        system_instruction: str | None,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": model_name,
            "messages": build_chat_messages(parts, system_instruction),
        }
        if max_output_tokens is not None:
            kwargs["max_tokens"] = max_output_tokens

        response = await self._client.chat.completions.create(**kwargs)
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def close(self) -> None:
        await self._client.close()
