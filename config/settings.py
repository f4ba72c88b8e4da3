"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    CORPUS_CHUNKS_PATH: str = Field(default="corpus/build/chunks.json")
    CORPUS_DOCS_DIR: str = Field(default="corpus/docs")
    CHECKPOINT_DIR: str = ""
    APP_CONFIG_PATH: str = ""

    DEFAULT_TRAFFIC_LOAD: float = 1000.0
    RETRIEVAL_K: int = 10
    MAX_REPEAT_ATTEMPTS: int = 5
    HISTORY_WINDOW: int = 10

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
