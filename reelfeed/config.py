"""
Runtime configuration helpers for the reelfeed service.

Loads DATABASE_URL and the feed settings from the environment and the .env
file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite+pysqlite:///./reelfeed.db", alias="DATABASE_URL")

    app_name: str = Field(default="Reelfeed", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    app_id: str = Field(default="asa1db", alias="REELFEED_APP_ID")

    # Feed behaviour
    document_store: Literal["sql", "memory"] = Field(default="sql", alias="DOCUMENT_STORE")
    swipe_threshold_px: float = Field(default=50.0, alias="SWIPE_THRESHOLD_PX")
    seed_initial_videos: bool = Field(default=True, alias="SEED_INITIAL_VIDEOS")
    transaction_max_attempts: int = Field(default=5, alias="TRANSACTION_MAX_ATTEMPTS")
    chat_history_limit: int = Field(default=100, alias="CHAT_HISTORY_LIMIT")

    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
