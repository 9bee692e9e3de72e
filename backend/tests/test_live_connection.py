"""Tests for per-connection ordering and teardown of live sessions."""

from __future__ import annotations

import asyncio

import pytest

from geminiguard.live.connection import LiveConnection
from geminiguard.live.manager import LiveSessionManager
from geminiguard.live.session import LifecycleState

from conftest import FakeWebSocket, GatedInferenceClient, wait_until


@pytest.mark.asyncio
async def test_replies_follow_arrival_order(profile) -> None:
    log: list = []
    client = GatedInferenceClient(gated_calls=1)
    client.log = log
    ws = FakeWebSocket(log=log)
    connection = LiveConnection(ws, LiveSessionManager(client, profile))

    ws.push({"type": "text_message", "text": "first"})
    ws.push({"type": "text_message", "text": "second"})
    task = asyncio.create_task(connection.run())

    await asyncio.wait_for(client.entered[0].wait(), 1.0)
    await asyncio.sleep(0.02)
    # The second message is queued but not dispatched while the first is outstanding.
    assert len(client.calls) == 1
    assert ws.sent == []

    client.gates[0].set()
    await wait_until(lambda: len(ws.sent) == 2)

    assert [m["text"] for m in ws.sent] == ["reply 1", "reply 2"]
    assert log == [("call", 1), ("send", "response"), ("call", 2), ("send", "response")]

    ws.disconnect()
    await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_disconnect_during_inference_discards_result(profile) -> None:
    client = GatedInferenceClient(gated_calls=1)
    ws = FakeWebSocket()
    manager = LiveSessionManager(client, profile)
    connection = LiveConnection(ws, manager)

    ws.push({"type": "audio_chunk", "transcript": "what does this say?"})
    task = asyncio.create_task(connection.run())
    await asyncio.wait_for(client.entered[0].wait(), 1.0)
    assert len(manager.session.transcript) == 1

    ws.disconnect()
    await wait_until(lambda: manager.session.is_ended)
    # Wiped while the model call is still outstanding.
    assert manager.session.transcript == []
    assert manager.session.image_context is None
    assert not task.done()

    client.gates[0].set()
    await asyncio.wait_for(task, 1.0)

    assert task.exception() is None
    assert ws.sent == []
    assert manager.session.state == LifecycleState.ENDED
    assert manager.session.transcript == []


@pytest.mark.asyncio
async def test_disconnect_during_failing_inference_is_quiet(profile) -> None:
    client = GatedInferenceClient(gated_calls=1)
    client.error = RuntimeError("connection reset")
    ws = FakeWebSocket()
    manager = LiveSessionManager(client, profile)
    connection = LiveConnection(ws, manager)

    ws.push({"type": "text_message", "text": "hello"})
    task = asyncio.create_task(connection.run())
    await asyncio.wait_for(client.entered[0].wait(), 1.0)
    ws.disconnect()
    await wait_until(lambda: manager.session.is_ended)
    client.gates[0].set()

    await asyncio.wait_for(task, 1.0)
    assert ws.sent == []


@pytest.mark.asyncio
async def test_end_session_closes_connection(fake_client, profile) -> None:
    ws = FakeWebSocket()
    manager = LiveSessionManager(fake_client, profile)
    connection = LiveConnection(ws, manager)

    ws.push({"type": "start_session"})
    ws.push({"type": "text_message", "text": "hi"})
    ws.push({"type": "end_session"})
    ws.push({"type": "text_message", "text": "ignored"})
    await asyncio.wait_for(connection.run(), 1.0)

    assert [m["type"] for m in ws.sent] == ["session_started", "response", "session_ended"]
    assert ws.close_code == 1000
    assert len(fake_client.calls) == 1
    assert manager.session.transcript == []


@pytest.mark.asyncio
async def test_binary_frames_are_rejected(fake_client, profile) -> None:
    ws = FakeWebSocket()
    connection = LiveConnection(ws, LiveSessionManager(fake_client, profile))

    ws.push_bytes(b"\x00\x01\x02")
    ws.push({"type": "start_session"})
    task = asyncio.create_task(connection.run())
    await wait_until(lambda: len(ws.sent) == 2)

    assert ws.sent[0]["type"] == "error"
    assert ws.sent[0]["code"] == "protocol_error"
    assert ws.sent[1]["type"] == "session_started"

    ws.disconnect()
    await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_unknown_kinds_get_no_reply(fake_client, profile) -> None:
    ws = FakeWebSocket()
    connection = LiveConnection(ws, LiveSessionManager(fake_client, profile))

    ws.push({"type": "ping"})
    ws.push({"type": "start_session"})
    task = asyncio.create_task(connection.run())
    await wait_until(lambda: len(ws.sent) == 1)

    assert ws.sent[0]["type"] == "session_started"

    ws.disconnect()
    await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_reader_stops_receiving_when_inbox_is_full(profile) -> None:
    client = GatedInferenceClient(gated_calls=1)
    ws = FakeWebSocket()
    connection = LiveConnection(ws, LiveSessionManager(client, profile), max_pending=2)

    for index in range(6):
        ws.push({"type": "text_message", "text": f"question {index}"})
    task = asyncio.create_task(connection.run())

    await asyncio.wait_for(client.entered[0].wait(), 1.0)
    await asyncio.sleep(0.02)
    # One frame in flight, two queued, one held by the blocked reader.
    assert ws.incoming.qsize() == 2

    client.gates[0].set()
    await wait_until(lambda: len(ws.sent) == 6)
    assert [m["text"] for m in ws.sent] == [f"reply {n}" for n in range(1, 7)]

    ws.disconnect()
    await asyncio.wait_for(task, 1.0)
