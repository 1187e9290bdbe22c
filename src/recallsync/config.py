"""Configuration settings for recallsync.

Settings come from ``RECALLSYNC_*`` environment variables and ``.env``. Only
the CLI reads them; library entry points take explicit config values.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from recallsync.core.config import DEFAULT_MERGE_CONCURRENCY, DEFAULT_MERGE_MAX_TOKENS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RECALLSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Session storage tree (project/, session/, message/, part/)
    storage_dir: Path = Field(default=Path.home() / ".local" / "share" / "opencode" / "storage")

    # Summary markdown files and the JSON outputs of diff/plan/merge
    summary_dir: Path = Field(default=Path(".recall") / "summaries")
    output_dir: Path = Field(default=Path(".recall"))
    summary_prefix: str = "summary-"

    merge_max_tokens: int = DEFAULT_MERGE_MAX_TOKENS
    merge_concurrency: int = DEFAULT_MERGE_CONCURRENCY


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings cache (useful for testing)."""
    global _settings
    _settings = None
