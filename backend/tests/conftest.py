"""Shared test fixtures for the GeminiGuard backend."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from geminiguard.inference.base import InferenceClient, Part
from geminiguard.main import app
from geminiguard.prompts.loader import PromptProfile, load_profile


class FakeInferenceClient(InferenceClient):
    """Records every call and answers with canned text."""

    provider = "fake"

    def __init__(self, responses: list[str] | None = None, error: Exception | None = None) -> None:
        super().__init__(vision_model="fake-vision", chat_model="fake-chat", timeout=5.0)
        self.calls: list[dict[str, Any]] = []
        self.responses = list(responses or [])
        self.error = error
        self.log: list[tuple[str, Any]] | None = None

    async def _generate(
        self,
        parts: list[Part],
        *,
        model_name: str,
        max_output_tokens: int | None,
        system_instruction: str | None,
    ) -> str:
        self._record(parts, model_name, max_output_tokens, system_instruction)
        return self._answer()

    def _record(
        self,
        parts: list[Part],
        model_name: str,
        max_output_tokens: int | None,
        system_instruction: str | None,
    ) -> None:
        self.calls.append(
            {
                "parts": parts,
                "model": model_name,
                "max_output_tokens": max_output_tokens,
                "system_instruction": system_instruction,
            }
        )
        if self.log is not None:
            self.log.append(("call", len(self.calls)))

    def _answer(self) -> str:
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return f"reply {len(self.calls)}"


class GatedInferenceClient(FakeInferenceClient):
    """Holds the first ``gated_calls`` calls open until their gate is set."""

    def __init__(self, gated_calls: int = 1) -> None:
        super().__init__()
        self.entered = [asyncio.Event() for _ in range(gated_calls)]
        self.gates = [asyncio.Event() for _ in range(gated_calls)]

    async def _generate(
        self,
        parts: list[Part],
        *,
        model_name: str,
        max_output_tokens: int | None,
        system_instruction: str | None,
    ) -> str:
        index = len(self.calls)
        self._record(parts, model_name, max_output_tokens, system_instruction)
        if index < len(self.gates):
            self.entered[index].set()
            await self.gates[index].wait()
        return self._answer()


class FakeWebSocket:
    """Minimal stand-in for a Starlette WebSocket driven from a test."""

    def __init__(self, log: list[tuple[str, Any]] | None = None) -> None:
        self.incoming: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.close_code: int | None = None
        self.log = log

    def push(self, payload: dict[str, Any]) -> None:
        self.incoming.put_nowait({"type": "websocket.receive", "text": json.dumps(payload)})

    def push_bytes(self, data: bytes) -> None:
        self.incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def disconnect(self) -> None:
        self.incoming.put_nowait({"type": "websocket.disconnect", "code": 1001})

    async def receive(self) -> dict[str, Any]:
        return await self.incoming.get()

    async def send_json(self, data: dict[str, Any]) -> None:
        self.sent.append(data)
        if self.log is not None:
            self.log.append(("send", data["type"]))

    async def close(self, code: int = 1000) -> None:
        self.close_code = code


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Poll ``predicate`` on the event loop until it holds."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def fake_client() -> FakeInferenceClient:
    return FakeInferenceClient()


@pytest.fixture
def profile() -> PromptProfile:
    return load_profile("general")


@pytest.fixture
def app_with_fake(fake_client: FakeInferenceClient) -> Generator[Any, None, None]:
    """The FastAPI app wired to the fake inference client."""
    app.state.inference_client = fake_client
    yield app
    app.state.inference_client = None
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app_with_fake) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app_with_fake)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
