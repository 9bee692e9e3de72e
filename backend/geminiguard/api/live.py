"""WebSocket endpoint for live multimodal sessions."""

import logging

from fastapi import Depends, WebSocket

from geminiguard.config import Settings, get_settings
from geminiguard.dependencies import get_inference_client, get_prompt_profile
from geminiguard.inference import InferenceClient
from geminiguard.live.connection import LiveConnection
from geminiguard.live.manager import LiveSessionManager, SessionPolicy
from geminiguard.prompts.loader import PromptProfile

logger = logging.getLogger(__name__)


async def websocket_live(
    websocket: WebSocket,
    client: InferenceClient = Depends(get_inference_client),
    profile: PromptProfile = Depends(get_prompt_profile),
    settings: Settings = Depends(get_settings),
) -> None:
    """Handle one live session over a WebSocket connection.

    Protocol:
        Client sends JSON text frames: {"type": "start_session" | "upload_image"
            | "audio_chunk" | "text_message" | "end_session", ...}
        Server sends JSON: {"type": "session_started" | "image_received"
            | "response" | "session_ended" | "error", "sessionId": "...",
            "timestamp": "...", ...}

    The session lives exactly as long as this handler; its state is wiped
    on end_session, disconnect or error.
    """
    await websocket.accept()
    manager = LiveSessionManager(client, profile, SessionPolicy.from_settings(settings))
    await LiveConnection(websocket, manager, max_pending=settings.live_max_pending_frames).run()
