"""Drive one WebSocket connection through a ``LiveSessionManager``.

Two tasks share the connection:

* the reader only receives frames and queues them; on disconnect it wipes
  the session immediately, even if a model call is still outstanding;
* the processing loop takes one frame at a time, strictly in arrival order,
  and sends its reply before looking at the next frame.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Union

from fastapi import WebSocket, WebSocketDisconnect

from geminiguard.live.manager import LiveSessionManager
from geminiguard.models.messages import OutgoingMessage, OutgoingType

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
MAX_PENDING_FRAMES = 32


class _BinaryFrame:
    """Queue marker for a binary frame (its bytes are never kept)."""


_BINARY = _BinaryFrame()
_CLOSED = None

Frame = Union[str, _BinaryFrame, None]


class LiveConnection:
    """Per-connection owner of the inbound queue and the session manager."""

    def __init__(
        self,
        websocket: WebSocket,
        manager: LiveSessionManager,
        max_pending: int = MAX_PENDING_FRAMES,
    ) -> None:
        self._websocket = websocket
        self._manager = manager
        # The reader blocks on a full inbox, which stops reading from the socket.
        self._inbox: asyncio.Queue[Frame] = asyncio.Queue(maxsize=max_pending)
        self._transport_closed = False

    @property
    def manager(self) -> LiveSessionManager:
        return self._manager

    async def run(self) -> None:
        """Process frames until the client ends the session or disconnects."""
        session_id = self._manager.session_id
        logger.info("Live connection opened: session_id=%s", session_id)
        reader = asyncio.create_task(self._read_frames())
        try:
            await self._process_frames()
        except Exception:
            logger.exception("Live connection error for session %s", session_id)
        finally:
            self._manager.close()
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
            logger.info("Live connection closed: session_id=%s", session_id)

    async def _read_frames(self) -> None:
        try:
            while True:
                message = await self._websocket.receive()
                if message.get("type") == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is not None:
                    await self._inbox.put(text)
                elif message.get("bytes") is not None:
                    await self._inbox.put(_BINARY)
        except WebSocketDisconnect:
            pass
        except RuntimeError as exc:
            logger.debug("Live connection receive failed: %s", exc)
        finally:
            if not self._transport_closed:
                self._transport_closed = True
                self._manager.close()
            # A full inbox still stops: the loop checks _transport_closed on its next frame.
            with contextlib.suppress(asyncio.QueueFull):
                self._inbox.put_nowait(_CLOSED)

    async def _process_frames(self) -> None:
        while True:
            frame = await self._inbox.get()
            if frame is _CLOSED or self._transport_closed:
                return

            if isinstance(frame, _BinaryFrame):
                reply = self._manager.reject_binary()
            else:
                reply = await self._manager.handle_raw(frame)

            if reply is None:
                continue
            if not await self._send(reply):
                return
            if reply.type == OutgoingType.SESSION_ENDED:
                await self._close()
                return

    async def _send(self, reply: OutgoingMessage) -> bool:
        if self._transport_closed:
            return False
        try:
            await self._websocket.send_json(reply.to_wire())
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Live connection send failed for session %s: %s", self._manager.session_id, exc)
            self._transport_closed = True
            return False
        return True

    async def _close(self) -> None:
        self._transport_closed = True
        with contextlib.suppress(Exception):
            await self._websocket.close(code=NORMAL_CLOSURE)

