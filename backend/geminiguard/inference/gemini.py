"""Native Gemini backend built on LangChain's Google GenAI chat model."""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from geminiguard.inference.base import BinaryPart, InferenceClient, Part

logger = logging.getLogger(__name__)


def build_content_blocks(parts: list[Part]) -> list[dict[str, Any]]:
    """Convert parts to LangChain multimodal content blocks.

    Binary parts become ``media`` blocks so the bytes travel inline with their
    mime type (images and documents alike).
    """
    blocks: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, BinaryPart):
            blocks.append(
                {"type": "media", "mime_type": part.mime_type, "data": part.data}
            )
        else:
            blocks.append({"type": "text", "text": part.text})
    return blocks


def extract_text(content: Any) -> str:
    """Flatten a chat model response content into plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks = []
        for block in content:
            if isinstance(block, str):
                chunks.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                chunks.append(block.get("text", ""))
        return "".join(chunks)
    return ""


class GeminiInferenceClient(InferenceClient):
    """Calls Gemini through ``ChatGoogleGenerativeAI``.

    One LangChain model is built per (model, output cap) pair and reused;
    the models hold no conversation state.
    """

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        vision_model: str,
        chat_model: str,
        timeout: float,
        temperature: float = 0.4,
    ) -> None:
        super().__init__(vision_model, chat_model, timeout)
        self._api_key = api_key
        self._temperature = temperature
        self._llms: dict[tuple[str, int | None], ChatGoogleGenerativeAI] = {}

        logger.info(
            "GeminiInferenceClient initialised with vision=%s, chat=%s",
            vision_model,
            chat_model,
        )

    def _llm(self, model_name: str, max_output_tokens: int | None) -> ChatGoogleGenerativeAI:
        key = (model_name, max_output_tokens)
        llm = self._llms.get(key)
        if llm is None:
            kwargs: dict[str, Any] = {
                "model": model_name,
                "google_api_key": self._api_key,
                "temperature": self._temperature,
                "timeout": self._timeout,
                "max_retries": 0,
            }
            if max_output_tokens is not None:
                kwargs["max_output_tokens"] = max_output_tokens
            llm = ChatGoogleGenerativeAI(**kwargs)
            self._llms[key] = llm
        return llm

    async def _generate(
        self,
        parts: list[Part],
        *,
        model_name: str,
        max_output_tokens: int | None,
        system_instruction: str | None,
    ) -> str:
        messages: list[BaseMessage] = []
        if system_instruction:
            messages.append(SystemMessage(content=system_instruction))
        messages.append(HumanMessage(content=build_content_blocks(parts)))

        result = await self._llm(model_name, max_output_tokens).ainvoke(messages)
        return extract_text(result.content)

    async def close(self) -> None:
        self._llms.clear()
