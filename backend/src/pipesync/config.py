"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (two levels above backend/src)
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        env_prefix="PIPESYNC_",
        extra="ignore",
    )

    # --- Remote execution service ---
    api_base_url: str = "http://localhost:5000/api/v1"
    api_timeout_s: float = 30.0
    api_max_attempts: int = 3

    # --- Polling ---
    poll_interval_s: float = 8.0

    # --- App ---
    app_env: str = "development"
    log_level: str = "INFO"


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
