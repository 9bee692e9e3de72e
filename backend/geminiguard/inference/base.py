"""Remote inference contract shared by every model backend.

A call is a sequence of parts (plain text or inline binary with a mime type)
and returns the generated text. Concrete backends only implement
``_generate``; timeouts, error wrapping and metadata-only logging live here.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Sequence, Union

from geminiguard.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

ModelRole = Literal["vision", "chat"]


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class BinaryPart:
    """Inline binary payload sent alongside text."""

    data: bytes
    mime_type: str

    def __repr__(self) -> str:
        # Never render the payload itself.
        return f"BinaryPart(mime_type={self.mime_type!r}, size={len(self.data)})"


Part = Union[TextPart, BinaryPart]


def describe_parts(parts: Sequence[Part]) -> str:
    """Return a log-safe summary of a part list (kinds, mime types, sizes)."""
    items = []
    for part in parts:
        if isinstance(part, BinaryPart):
            items.append(f"binary:{part.mime_type}:{len(part.data)}b")
        else:
            items.append(f"text:{len(part.text)}c")
    return ",".join(items) or "-"


class InferenceClient(ABC):
    """Stateless client for one remote multimodal model provider."""

    provider: str = "unknown"

    def __init__(self, vision_model: str, chat_model: str, timeout: float) -> None:
        self.vision_model = vision_model
        self.chat_model = chat_model
        self._timeout = timeout

    def model_for(self, role: ModelRole) -> str:
        return self.vision_model if role == "vision" else self.chat_model

    async def infer(
        self,
        parts: Sequence[Part],
        *,
        model: ModelRole = "chat",
        max_output_tokens: int | None = None,
        system_instruction: str | None = None,
    ) -> str:
        """Generate text from ``parts``.

        Args:
            parts: Ordered text and inline binary parts forming one user turn.
            model: Which configured model to use ("vision" or "chat").
            max_output_tokens: Optional cap on generated tokens.
            system_instruction: Optional system prompt sent ahead of the turn.

        Returns:
            The generated text.

        Raises:
            ValidationError: If ``parts`` is empty.
            UpstreamError: If the provider call fails, times out or returns
                no text. No retry is attempted.
        """
        if not parts:
            raise ValidationError("Inference requires at least one part")

        model_name = self.model_for(model)
        logger.debug(
            "Inference call provider=%s model=%s parts=%s",
            self.provider,
            model_name,
            describe_parts(parts),
        )

        try:
            text = await asyncio.wait_for(
                self._generate(
                    list(parts),
                    model_name=model_name,
                    max_output_tokens=max_output_tokens,
                    system_instruction=system_instruction,
                ),
                timeout=self._timeout,
            )
        except UpstreamError:
            raise
        except asyncio.TimeoutError as exc:
            raise UpstreamError(
                f"Model call timed out after {self._timeout:g}s",
                details={"model": model_name},
            ) from exc
        except Exception as exc:
            raise UpstreamError(str(exc) or type(exc).__name__, details={"model": model_name}) from exc

        if not text or not text.strip():
            raise UpstreamError("Model returned an empty response", details={"model": model_name})
        return text

    @abstractmethod
    async def _generate(
        self,
        parts: list[Part],
        *,
        model_name: str,
        max_output_tokens: int | None,
        system_instruction: str | None,
    ) -> str:
        """Perform the provider call and return the raw generated text."""

    async def close(self) -> None:
        """Release provider resources. Default is a no-op."""
