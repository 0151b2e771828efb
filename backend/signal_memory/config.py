"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from signal_core.models.config import MemoryConfig, TrainConfig


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Nested values use a double underscore, e.g. TRAIN__SEQ_LEN=30 or
    MEMORY__MIN_SAMPLES_FOR_PATTERN=50.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql://localhost/stocks"
    debug: bool = False

    # Pipeline
    train: TrainConfig = TrainConfig()
    memory: MemoryConfig = MemoryConfig()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
