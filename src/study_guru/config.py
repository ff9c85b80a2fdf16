"""Runtime settings loaded from the environment or a .env file."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from study_guru.db import DEFAULT_DB_PATH


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STUDY_GURU_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="SQLite database file",
    )
    log_level: str = Field(default="INFO", description="loguru level for the CLI sink")

    # Content-planning / generation providers, tried in order
    gemini_api_key: str = Field(default="", description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash")
    openrouter_api_key: str = Field(default="", description="OpenRouter key for free-model fallback")
    openrouter_model: str = Field(default="meta-llama/llama-3.3-70b-instruct:free")
    request_timeout_seconds: float = Field(default=30.0, gt=0)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
