"""
Fairway – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──
    APP_NAME: str = "Fairway"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Database ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./fairway.db"

    # ── Plan writer (OpenAI-compatible chat completions gateway) ──
    AI_GATEWAY_URL: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    AI_API_KEY: str = ""
    AI_MODEL: str = "google/gemini-2.5-flash"
    AI_TIMEOUT_SECONDS: float = 30.0

    # ── Plan generation ──
    PLAN_WINDOW_LIMIT: int = 5
    DEFAULT_FIT_SCORE: int = 80

    # ── Live vote stream ──
    VOTE_EVENT_SEND_TIMEOUT_SECONDS: float = 5.0


settings = Settings()
