"""Application configuration using pydantic-settings."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "GeminiGuard"
    environment: str = "development"
    log_level: str = "info"
    host: str = "0.0.0.0"
    port: int = 3000

    # Google AI
    gemini_api_key: str = ""
    inference_backend: Literal["gemini", "openai"] = "gemini"
    vision_model: str = "gemini-2.5-flash"
    chat_model: str = "gemini-2.5-flash"
    openai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    request_timeout_seconds: float = 60.0

    # Uploads
    max_upload_bytes: int = 10 * 1024 * 1024

    # Prompts
    prompt_profile: str = "general"

    # Live sessions
    live_require_start: bool = False
    live_replay_transcript: bool = False
    live_replay_turns: int = 10
    live_max_pending_frames: int = 32

    # Static frontend (optional)
    public_dir: str = "public"

    # CORS
    frontend_url: str = "http://localhost:3000"


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency for injecting settings."""
    return settings
