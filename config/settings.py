"""Application settings and configuration management."""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    TRANSCRIPTS_DIR: str = Field(default="data/transcripts")
    APP_CONFIG_PATH: Optional[str] = None

    MAX_FOLLOW_UPS: int = 2
    SESSION_IDLE_TIMEOUT_S: int = 7200

    ORACLE_BASE_URL: str = "https://openrouter.ai/api/v1"
    ORACLE_ENDPOINT: str = "/chat/completions"
    ORACLE_MODEL: str = "mistralai/mistral-7b-instruct"
    ORACLE_API_KEY_ENV: str = "OPENROUTER_API_KEY"
    ORACLE_TIMEOUT_S: float = 30.0
    ORACLE_MAX_RETRIES: int = 2

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
