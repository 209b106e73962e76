"""Configuration management for gmail-size-stats.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the GMAIL_SIZE_STATS_ prefix (e.g., GMAIL_SIZE_STATS_MONGO_DATABASE).
    """

    model_config = SettingsConfigDict(
        env_prefix="GMAIL_SIZE_STATS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Gmail Configuration
    gmail_credentials_path: Path = Field(
        default=Path("client_secret.json"),
        description="Path to the OAuth client secret downloaded from Google Cloud Console",
    )
    gmail_token_path: Path = Field(
        default=Path("~/.credentials/gmail-size-stats.json"),
        description="Path where the authorized user token is cached",
    )
    gmail_scope: str = Field(
        default="https://www.googleapis.com/auth/gmail.readonly",
        description="OAuth scope used for Gmail access",
    )
    gmail_user_id: str = Field(
        default="me",
        description="Gmail user id passed to every API call",
    )
    gmail_page_size: int = Field(
        default=500,
        ge=1,
        le=500,
        description="Page size used when listing message ids",
    )
    gmail_include_spam_trash: bool = Field(
        default=True,
        description="Include SPAM and TRASH when listing message ids",
    )

    # MongoDB Configuration
    mongo_connect_string: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string",
    )
    mongo_database: str = Field(
        default="gmail",
        description="Database holding the mirrored mailbox",
    )
    messages_collection: str = Field(
        default="messages",
        description="Collection storing message records",
    )
    labels_collection: str = Field(
        default="labels",
        description="Collection storing the label snapshot",
    )
    mongo_timeout_ms: int = Field(
        default=5000,
        description="Server selection timeout in milliseconds",
    )

    # Sync Configuration
    resume_margin_hours: int = Field(
        default=48,
        ge=0,
        description="Hours subtracted from the newest stored message when resuming a listing",
    )
    dispatch_batch_size: int = Field(
        default=100,
        ge=1,
        description="Maximum number of unprocessed records read per dispatch pass",
    )
    rate_limit_backoff_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Seconds a worker sleeps after a rate-limited fetch",
    )
    default_concurrency: int = Field(
        default=1,
        ge=1,
        le=50,
        description="Number of enrichment workers when --procNum is not given",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    max_retries: int = Field(
        default=3,
        description="Maximum number of retries when connecting to MongoDB",
    )

    @field_validator("gmail_credentials_path", "gmail_token_path", mode="after")
    @classmethod
    def _expand_user(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("log_level", mode="after")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
