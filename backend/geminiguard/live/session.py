"""Per-connection live session state.

A ``LiveSession`` belongs to exactly one WebSocket connection and is never
registered anywhere else. ``wipe`` is the only way to reach ``ENDED`` and it
drops the image and every turn before the state flips.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LifecycleState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ImageContext:
    data: bytes
    mime_type: str

    def __repr__(self) -> str:
        return f"ImageContext(mime_type={self.mime_type!r}, size={len(self.data)})"


@dataclass(frozen=True)
class Turn:
    role: TurnRole
    text: str


@dataclass
class LiveSession:
    """Mutable state for one live conversation."""

    session_id: str
    image_context: ImageContext | None = None
    transcript: list[Turn] = field(default_factory=list)
    state: LifecycleState = LifecycleState.IDLE

    @property
    def is_ended(self) -> bool:
        return self.state == LifecycleState.ENDED

    def activate(self) -> None:
        if self.state == LifecycleState.IDLE:
            self.state = LifecycleState.ACTIVE

    def set_image(self, data: bytes, mime_type: str) -> None:
        """Replace the held image; only one is ever kept."""
        self.image_context = ImageContext(data=data, mime_type=mime_type)

    def add_turn(self, role: TurnRole, text: str) -> None:
        self.transcript.append(Turn(role=role, text=text))

    def recent_turns(self, limit: int) -> list[Turn]:
        return self.transcript[-limit:] if limit else list(self.transcript)

    def wipe(self) -> None:
        """Discard all content and enter ``ENDED``. Safe to call repeatedly."""
        self.transcript.clear()
        self.image_context = None
        self.state = LifecycleState.ENDED
