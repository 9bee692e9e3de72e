"""Tests for the remote inference clients."""

from __future__ import annotations

import asyncio
import base64
from types import SimpleNamespace
from typing import Any

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from geminiguard.config import Settings
from geminiguard.errors import UpstreamError, ValidationError
from geminiguard.inference import (
    BinaryPart,
    GeminiInferenceClient,
    OpenAICompatibleInferenceClient,
    TextPart,
    build_inference_client,
)
from geminiguard.inference.base import describe_parts
from geminiguard.inference.gemini import build_content_blocks, extract_text
from geminiguard.inference.openai_compat import build_chat_messages

from conftest import FakeInferenceClient

IMAGE = BinaryPart(data=b"\x89PNGdata", mime_type="image/png")


class _SlowClient(FakeInferenceClient):
    async def _generate(self, parts, **kwargs):
        await asyncio.sleep(1)
        return "too late"


@pytest.mark.asyncio
async def test_infer_requires_parts() -> None:
    with pytest.raises(ValidationError):
        await FakeInferenceClient().infer([])


@pytest.mark.asyncio
async def test_infer_wraps_provider_errors() -> None:
    client = FakeInferenceClient(error=PermissionError("API key not valid"))

    with pytest.raises(UpstreamError) as exc_info:
        await client.infer([TextPart("hi")], model="vision")

    assert exc_info.value.message == "API key not valid"
    assert exc_info.value.details == {"model": "fake-vision"}


@pytest.mark.asyncio
async def test_infer_times_out_as_upstream_error() -> None:
    client = _SlowClient()
    client._timeout = 0.01

    with pytest.raises(UpstreamError, match="timed out"):
        await client.infer([TextPart("hi")])


@pytest.mark.asyncio
async def test_infer_rejects_empty_output() -> None:
    client = FakeInferenceClient(responses=["   "])

    with pytest.raises(UpstreamError, match="empty response"):
        await client.infer([TextPart("hi")])


def test_parts_never_render_payload() -> None:
    part = BinaryPart(data=b"secret-bytes", mime_type="image/jpeg")

    assert "secret" not in repr(part)
    assert describe_parts([TextPart("hello"), part]) == "text:5c,binary:image/jpeg:12b"


def test_gemini_content_blocks_keep_order() -> None:
    blocks = build_content_blocks([TextPart("Describe"), IMAGE])

    assert blocks == [
        {"type": "text", "text": "Describe"},
        {"type": "media", "mime_type": "image/png", "data": b"\x89PNGdata"},
    ]


def test_extract_text_flattens_block_lists() -> None:
    assert extract_text("plain") == "plain"
    assert extract_text([{"type": "text", "text": "a"}, "b", {"type": "thinking"}]) == "ab"
    assert extract_text(None) == ""


class _FakeChatModel:
    def __init__(self) -> None:
        self.messages: list[Any] = []

    async def ainvoke(self, messages):
        self.messages = messages
        return AIMessage(content="gemini says hi")


@pytest.mark.asyncio
async def test_gemini_client_sends_system_and_multimodal_turn(monkeypatch) -> None:
    client = GeminiInferenceClient(api_key="k", vision_model="v", chat_model="c", timeout=5)
    fake_model = _FakeChatModel()
    requested: list[tuple[str, int | None]] = []

    def fake_llm(model_name, max_output_tokens):
        requested.append((model_name, max_output_tokens))
        return fake_model

    monkeypatch.setattr(client, "_llm", fake_llm)

    text = await client.infer(
        [TextPart("What is this?"), IMAGE],
        model="vision",
        max_output_tokens=500,
        system_instruction="Be private.",
    )

    assert text == "gemini says hi"
    assert requested == [("v", 500)]
    system, human = fake_model.messages
    assert isinstance(system, SystemMessage) and system.content == "Be private."
    assert isinstance(human, HumanMessage)
    assert human.content[1]["mime_type"] == "image/png"


def test_gemini_client_reuses_models_per_cap() -> None:
    client = GeminiInferenceClient(api_key="test-key", vision_model="v", chat_model="c", timeout=5)

    first = client._llm("c", 150)
    assert client._llm("c", 150) is first
    assert client._llm("c", 500) is not first


def test_openai_messages_use_data_uris() -> None:
    messages = build_chat_messages([TextPart("Read this"), IMAGE], "Stay private.")

    assert messages[0] == {"role": "system", "content": "Stay private."}
    user = messages[1]
    assert user["role"] == "user"
    assert user["content"][0] == {"type": "text", "text": "Read this"}
    encoded = base64.b64encode(IMAGE.data).decode("ascii")
    assert user["content"][1] == {
        "type": "image_url",
        "image_url": {"url": f"data:image/png;base64,{encoded}"},
    }


class _FakeCompletions:
    def __init__(self, content: str | None) -> None:
        self.kwargs: dict[str, Any] = {}
        self._content = content

    async def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.mark.asyncio
async def test_openai_client_passes_model_and_token_cap() -> None:
    completions = _FakeCompletions("summary text")
    fake_sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    client = OpenAICompatibleInferenceClient(
        api_key="k",
        base_url="https://example.invalid/",
        vision_model="v",
        chat_model="c",
        timeout=5,
        client=fake_sdk,
    )

    text = await client.infer([TextPart("Summarize")], max_output_tokens=150)

    assert text == "summary text"
    assert completions.kwargs["model"] == "c"
    assert completions.kwargs["max_tokens"] == 150


@pytest.mark.asyncio
async def test_openai_client_missing_content_is_upstream_error() -> None:
    fake_sdk = SimpleNamespace(chat=SimpleNamespace(completions=_FakeCompletions(None)))
    client = OpenAICompatibleInferenceClient(
        api_key="k", base_url="https://example.invalid/", vision_model="v", chat_model="c", timeout=5, client=fake_sdk
    )

    with pytest.raises(UpstreamError):
        await client.infer([TextPart("Summarize")])


def test_factory_selects_backend() -> None:
    gemini = build_inference_client(Settings(gemini_api_key="test-key", inference_backend="gemini"))
    compat = build_inference_client(Settings(gemini_api_key="test-key", inference_backend="openai"))

    assert isinstance(gemini, GeminiInferenceClient)
    assert isinstance(compat, OpenAICompatibleInferenceClient)
    assert compat.chat_model == Settings().chat_model
