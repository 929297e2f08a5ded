# ABOUTME: Application configuration using Pydantic Settings for environment variables
# ABOUTME: Provides type-safe access to the SNPedia endpoint, storage, refresh policy and logging settings

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="SNPEDIA_HARVEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown environment variables
    )

    # SNPedia API Configuration
    snpedia_api_url: str = Field(
        default="https://bots.snpedia.com/api.php", description="MediaWiki API endpoint used to fetch variant pages"
    )
    user_agent: str = Field(
        default="snpedia-harvest/0.1 (variant page extraction; research use)",
        description="User-Agent header sent with every SNPedia request",
    )
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds for SNPedia requests")
    requests_per_second: float = Field(
        default=1.0, ge=0.0, description="Client-side rate limit for SNPedia requests (0 disables limiting)"
    )
    max_fetch_attempts: int = Field(default=3, ge=1, description="Attempts per request for retryable fetch errors")

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./snpedia_harvest.db", description="Database URL for async SQLite operations"
    )
    refresh_after_days: int = Field(
        default=30, ge=0, description="Stored records older than this many days are fetched again"
    )
    include_raw_content: bool = Field(
        default=True, description="Keep the raw HTML and wikitext on extracted records for auditing"
    )

    # Logging Configuration
    log_mode: Literal["interactive", "production"] = Field(default="interactive", description="Logging output mode")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging verbosity level"
    )

    log_file: Path | None = Field(default=None, description="Custom log file path (overrides default)")


# Global config instance - lazy loaded when first accessed
_config_instance: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Creates the config on first access, subsequent calls return the same instance.

    Returns:
        Config: The application configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reload_config() -> Config:
    """Reload configuration from environment variables.

    Useful for testing or when environment variables change at runtime.

    Returns:
        Config: A fresh configuration instance
    """
    global _config_instance
    _config_instance = Config()
    return _config_instance
