"""Message models for the live WebSocket channel."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from geminiguard.errors import ProtocolError


class _Inbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartSession(_Inbound):
    type: Literal["start_session"]


class UploadImage(_Inbound):
    type: Literal["upload_image"]
    data: str = Field(min_length=1)  # base64-encoded image bytes
    mime_type: str = Field(alias="mimeType", min_length=1)


class AudioChunk(_Inbound):
    """Client-side transcribed speech; raw audio is never processed here."""

    type: Literal["audio_chunk"]
    transcript: Optional[str] = None
    data: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class TextMessage(_Inbound):
    type: Literal["text_message"]
    text: str


class EndSession(_Inbound):
    type: Literal["end_session"]


IncomingMessage = Annotated[
    Union[StartSession, UploadImage, AudioChunk, TextMessage, EndSession],
    Field(discriminator="type"),
]

_incoming_adapter: TypeAdapter[IncomingMessage] = TypeAdapter(IncomingMessage)

INBOUND_KINDS = frozenset(
    {"start_session", "upload_image", "audio_chunk", "text_message", "end_session"}
)


def _describe_errors(exc: PydanticValidationError) -> str:
    # Field locations and reasons only; input values may hold user content.
    return "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )


def parse_incoming(raw: str) -> IncomingMessage | None:
    """Decode one JSON text frame into a typed inbound message.

    Returns ``None`` for a well-formed frame whose ``type`` is not a known
    kind; such frames are ignored by the session.

    Raises:
        ProtocolError: If the frame is not a JSON object, has no string
            ``type``, or a known kind carries an invalid body.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProtocolError("Invalid JSON") from exc

    if not isinstance(payload, dict):
        raise ProtocolError("Message must be a JSON object")

    kind = payload.get("type")
    if not isinstance(kind, str) or not kind:
        raise ProtocolError("Message must include a string 'type'")
    if kind not in INBOUND_KINDS:
        return None

    try:
        return _incoming_adapter.validate_python(payload)
    except PydanticValidationError as exc:
        raise ProtocolError(
            f"Invalid {kind} message: {_describe_errors(exc)}",
            details={"kind": kind},
        ) from exc


class OutgoingType(str, Enum):
    """Outbound message type discriminator."""

    SESSION_STARTED = "session_started"
    IMAGE_RECEIVED = "image_received"
    RESPONSE = "response"
    SESSION_ENDED = "session_ended"
    ERROR = "error"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OutgoingMessage(BaseModel):
    """Message sent to the client via WebSocket."""

    model_config = ConfigDict(populate_by_name=True)

    type: OutgoingType
    session_id: str = Field(serialization_alias="sessionId")
    timestamp: str = Field(default_factory=_now_iso)
    message: Optional[str] = None
    text: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, serialization_alias="mimeType")
    size: Optional[int] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
