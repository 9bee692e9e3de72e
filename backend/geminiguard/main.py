"""FastAPI application entry point with lifespan management."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from geminiguard.api.errors import register_exception_handlers
from geminiguard.api.live import websocket_live
from geminiguard.api.router import api_router
from geminiguard.config import settings
from geminiguard.inference import build_inference_client
from geminiguard.prompts.loader import load_profile

logger = logging.getLogger(__name__)

PUBLIC_DIR = Path(settings.public_dir)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the shared inference client and close it on shutdown."""
    logger.info("Starting %s backend...", settings.app_name)

    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; model calls will fail")

    # Fail fast on a misconfigured prompt profile.
    profile = load_profile(settings.prompt_profile)
    app.state.inference_client = build_inference_client(settings)
    logger.info(
        "Inference backend=%s, vision=%s, chat=%s, prompt profile=%s",
        settings.inference_backend,
        settings.vision_model,
        settings.chat_model,
        profile.name,
    )
    logger.info("Privacy mode: zero-retention, uploads and sessions are never persisted")

    yield

    # Cleanup
    await app.state.inference_client.close()
    app.state.inference_client = None
    logger.info("%s backend shut down cleanly", settings.app_name)


app = FastAPI(
    title="GeminiGuard API",
    description="Privacy-preserving multimodal analysis with zero data retention",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def privacy_log(request: Request, call_next):
    """Log each request line with status and duration; bodies are never logged."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    logger.debug("Zero-retention mode: request processed ephemerally")
    return response


register_exception_handlers(app)

# Mount API routes
app.include_router(api_router, prefix="/api")

# Mount WebSocket endpoint (outside /api prefix)
app.websocket("/ws/live")(websocket_live)

# Serve the optional static frontend
if PUBLIC_DIR.exists():
    app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")


@app.get("/", include_in_schema=False)
async def serve_index():
    """Serve the frontend index page from the public directory."""
    index_path = PUBLIC_DIR / "index.html"
    if not index_path.exists():
        raise HTTPException(status_code=404, detail="Frontend not found")
    return FileResponse(index_path)


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
