"""Live session manager: typed message dispatch over one session's state.

The manager is transport-agnostic. It takes one inbound message at a time,
mutates its ``LiveSession`` and returns the outbound message to send (or
``None`` when nothing should be sent). The caller is responsible for never
handing it a second message before the first one's reply went out.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from uuid import uuid4

from typing_extensions import assert_never

from geminiguard.config import Settings
from geminiguard.errors import GeminiGuardError, ProtocolError, ValidationError
from geminiguard.inference.base import InferenceClient, Part
from geminiguard.live.session import LifecycleState, LiveSession, Turn, TurnRole
from geminiguard.models.messages import (
    AudioChunk,
    EndSession,
    IncomingMessage,
    OutgoingMessage,
    OutgoingType,
    StartSession,
    TextMessage,
    UploadImage,
    parse_incoming,
)
from geminiguard.prompts.builders import build_live_audio_parts, build_live_text_parts
from geminiguard.prompts.loader import PromptProfile

logger = logging.getLogger(__name__)

READY_MESSAGE = "Live session started. Share an image or ask a question."
IMAGE_READY_MESSAGE = "Image received. Ask a question about it."
ENDED_MESSAGE = "Session ended. All session data has been erased."


@dataclass(frozen=True)
class SessionPolicy:
    """Tunable behaviour of a live session."""

    require_start: bool = False
    replay_transcript: bool = False
    replay_turns: int = 10
    max_image_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionPolicy":
        return cls(
            require_start=settings.live_require_start,
            replay_transcript=settings.live_replay_transcript,
            replay_turns=settings.live_replay_turns,
            max_image_bytes=settings.max_upload_bytes,
        )


def decode_image(data: str) -> bytes:
    """Decode base64 image data, accepting an optional ``data:`` URI prefix."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Image data is not valid base64") from exc


class LiveSessionManager:
    """Owns one live session for the lifetime of one connection."""

    def __init__(
        self,
        client: InferenceClient,
        profile: PromptProfile,
        policy: SessionPolicy | None = None,
        session_id: str | None = None,
    ) -> None:
        self._client = client
        self._profile = profile
        self._policy = policy or SessionPolicy()
        self.session = LiveSession(session_id=session_id or uuid4().hex)

    @property
    def session_id(self) -> str:
        return self.session.session_id

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle_raw(self, raw: str) -> OutgoingMessage | None:
        """Parse and handle one JSON text frame."""
        try:
            message = parse_incoming(raw)
        except ProtocolError as exc:
            return self._error(exc)

        if message is None:
            logger.warning("Ignoring unrecognized message kind in session %s", self.session_id)
            return None
        return await self.handle(message)

    async def handle(self, message: IncomingMessage) -> OutgoingMessage | None:
        """Apply one inbound message; errors become ``error`` replies."""
        logger.debug("Session %s handling %s", self.session_id, message.type)
        try:
            if self.session.is_ended:
                raise ProtocolError("Session has ended; open a new connection")
            self._check_started(message)
            return await self._dispatch(message)
        except GeminiGuardError as exc:
            return self._error(exc)
        except Exception as exc:
            logger.exception("Unexpected error in session %s while handling %s", self.session_id, message.type)
            return self._error(GeminiGuardError("internal_error", f"Processing error: {exc}"))

    def reject_binary(self) -> OutgoingMessage:
        return self._error(ProtocolError("Binary frames are not supported; send JSON text"))

    def close(self) -> None:
        """Tear down on transport close or error. Always wipes the session."""
        if not self.session.is_ended:
            logger.info("Session %s closed by transport, wiping state", self.session_id)
        self.session.wipe()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _check_started(self, message: IncomingMessage) -> None:
        if isinstance(message, (StartSession, EndSession)):
            return
        if self._policy.require_start and self.session.state == LifecycleState.IDLE:
            raise ProtocolError("Send start_session before other messages")

    async def _dispatch(self, message: IncomingMessage) -> OutgoingMessage | None:
        if isinstance(message, StartSession):
            self.session.activate()
            return self._reply(OutgoingType.SESSION_STARTED, message=READY_MESSAGE)
        if isinstance(message, UploadImage):
            return self._on_upload_image(message)
        if isinstance(message, AudioChunk):
            return await self._on_audio_chunk(message)
        if isinstance(message, TextMessage):
            return await self._on_text_message(message)
        if isinstance(message, EndSession):
            self.session.wipe()
            logger.info("Session %s ended by client", self.session_id)
            return self._reply(OutgoingType.SESSION_ENDED, message=ENDED_MESSAGE)
        assert_never(message)

    def _on_upload_image(self, message: UploadImage) -> OutgoingMessage:
        mime_type = message.mime_type.strip().lower()
        if not mime_type.startswith("image/"):
            raise ValidationError("mimeType must be an image type")
        data = decode_image(message.data)
        if not data:
            raise ValidationError("Image data is empty")
        if len(data) > self._policy.max_image_bytes:
            raise ValidationError(
                f"Image exceeds the {self._policy.max_image_bytes} byte limit",
                details={"size": len(data)},
            )

        self.session.activate()
        self.session.set_image(data, mime_type)
        logger.info("Session %s image set: %d bytes (%s)", self.session_id, len(data), mime_type)
        return self._reply(
            OutgoingType.IMAGE_RECEIVED,
            message=IMAGE_READY_MESSAGE,
            mime_type=mime_type,
            size=len(data),
        )

    async def _on_audio_chunk(self, message: AudioChunk) -> OutgoingMessage | None:
        self.session.activate()
        transcript = (message.transcript or "").strip()
        if not transcript and self.session.image_context is None:
            raise ValidationError("Audio chunk needs a transcript or a shared image")

        history = self._history()
        if transcript:
            self.session.add_turn(TurnRole.USER, transcript)
        reply = await self._infer(build_live_audio_parts(transcript, self.session.image_context, history))
        if reply is None:
            return None
        self.session.add_turn(TurnRole.ASSISTANT, reply)
        return self._reply(OutgoingType.RESPONSE, text=reply)

    async def _on_text_message(self, message: TextMessage) -> OutgoingMessage | None:
        self.session.activate()
        text = message.text.strip()
        if not text:
            raise ValidationError("Message text is required")

        parts = build_live_text_parts(self._profile, text, self.session.image_context, self._history())
        reply = await self._infer(parts)
        if reply is None:
            return None
        self.session.add_turn(TurnRole.USER, text)
        self.session.add_turn(TurnRole.ASSISTANT, reply)
        return self._reply(OutgoingType.RESPONSE, text=reply)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _history(self) -> list[Turn] | None:
        if not self._policy.replay_transcript:
            return None
        return self.session.recent_turns(self._policy.replay_turns)

    async def _infer(self, parts: list[Part]) -> str | None:
        """Run one model call; ``None`` means the session ended meanwhile."""
        try:
            text = await self._client.infer(
                parts,
                model="chat",
                system_instruction=self._profile.live_system,
            )
        except GeminiGuardError:
            if self.session.is_ended:
                logger.info("Session %s ended during a failed model call", self.session_id)
                return None
            raise

        if self.session.is_ended:
            logger.info("Session %s ended during a model call, discarding output", self.session_id)
            return None
        return text

    def _reply(self, msg_type: OutgoingType, **fields) -> OutgoingMessage:
        return OutgoingMessage(type=msg_type, session_id=self.session_id, **fields)

    def _error(self, exc: GeminiGuardError) -> OutgoingMessage:
        logger.warning("Session %s error (%s): %s", self.session_id, exc.code, exc.message)
        return self._reply(OutgoingType.ERROR, error=exc.message, code=exc.code)
