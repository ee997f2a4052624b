"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/roleplay.db")
    ADMIN_TOKEN: str = ""

    ENRICHMENT_PROVIDER: str = "mock"
    CHAT_PROVIDER: str = "mock"
    ENRICHMENT_TIMEOUT_S: float = Field(default=8.0, gt=0.0)
    ENRICHMENT_WORKERS: int = Field(default=4, ge=1)

    LLM_CONFIG_PATH: str = "config/llm_routes.json"
    SIMULATOR_RULES_PATH: str = "config/simulator.yaml"

    LEADERBOARD_DEFAULT_LIMIT: int = 20
    LEADERBOARD_MAX_LIMIT: int = 200
    LEADERBOARD_MAX_SIZE: int = 2000
    TRANSCRIPT_WINDOW: int = 12

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
