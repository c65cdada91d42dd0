"""
Configuration settings for the brain-mentor mastery service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Content Generation (OpenRouter)
    # ========================================
    openrouter_api_key: str | None = Field(
        default=None,
        description="OpenRouter API key for the content-generation service",
    )
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL of the OpenRouter-compatible chat completions API",
    )
    ai_model: str = Field(
        default="google/gemini-3-flash-preview",
        description="Model used for battery, evaluation and remediation requests",
    )
    generation_timeout_seconds: float = Field(
        default=60.0,
        description="Per-request timeout for generation calls",
    )
    generation_retry_attempts: int = Field(
        default=2,
        ge=1,
        description="Attempts per generation request on transient transport errors",
    )
    app_referer: str = Field(
        default="https://github.com/brain-mentor/brain-mentor",
        description="HTTP-Referer header sent to OpenRouter",
    )
    app_title: str = Field(
        default="Mentor Agent",
        description="X-Title header sent to OpenRouter",
    )

    # ========================================
    # Web Search (You.com)
    # ========================================
    ydc_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ydc_api_key", "you_api_key"),
        description="You.com search API key (YDC_API_KEY or YOU_API_KEY)",
    )
    search_base_url: str = Field(
        default="https://ydc-index.io/v1",
        description="Base URL of the You.com index API",
    )
    search_result_count: int = Field(
        default=5,
        ge=1,
        description="Default number of results per search query",
    )
    search_concurrency: int = Field(
        default=3,
        ge=1,
        description="Maximum number of search queries in flight at once",
    )
    search_timeout_seconds: float = Field(
        default=15.0,
        description="Per-request timeout for search calls",
    )

    # ========================================
    # Mastery Loop
    # ========================================
    mastery_max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Optional ceiling on failed attempts before escalating; unset means no ceiling",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(
        default="INFO",
        description="Log level for the CLI sink",
    )

    def has_ai_configured(self) -> bool:
        """Check if the content-generation service is configured."""
        return bool(self.openrouter_api_key)

    def has_search_configured(self) -> bool:
        """Check if web search is configured."""
        return bool(self.ydc_api_key)

    def get_generation_config(self) -> dict[str, Any]:
        """Get content-generation client configuration as a dictionary."""
        return {
            "api_key": self.openrouter_api_key,
            "base_url": self.openrouter_base_url,
            "model": self.ai_model,
            "timeout_seconds": self.generation_timeout_seconds,
            "retry_attempts": self.generation_retry_attempts,
            "referer": self.app_referer,
            "title": self.app_title,
        }

    def get_search_config(self) -> dict[str, Any]:
        """Get web search client configuration as a dictionary."""
        return {
            "api_key": self.ydc_api_key,
            "base_url": self.search_base_url,
            "result_count": self.search_result_count,
            "concurrency": self.search_concurrency,
            "timeout_seconds": self.search_timeout_seconds,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
