"""Configuration management using pydantic-settings."""
from enum import Enum
from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMBackendType(str, Enum):
    """Supported LLM backends."""
    OPENAI = "openai"
    MOCK = "mock"


class LLMSettings(BaseSettings):
    """LLM configuration for column suggestions.

    All settings prefixed with LLM_ (e.g., LLM_MODEL=gpt-4o-mini). The API key
    is also read from the conventional OPENAI_API_KEY variable.

    Supported backends:
    - openai: OpenAI-compatible chat completions API
    - mock: Mock client for testing
    """

    backend: LLMBackendType = Field(
        default=LLMBackendType.OPENAI,
        description="LLM backend to use (openai, mock)"
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="Chat completions model used for column suggestions"
    )

    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LLM_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="Bearer credential for the suggestion API"
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI-compatible API base URL"
    )

    timeout: float = Field(
        default=60.0,
        ge=1.0,
        le=300.0,
        description="Request timeout in seconds"
    )
    max_retries: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Maximum request attempts"
    )
    temperature: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Model temperature (unset = provider default)"
    )

    enabled: bool = Field(
        default=True,
        description="Enable/disable AI column suggestions globally"
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def has_credentials(self) -> bool:
        """True when an API key is configured."""
        return bool(self.openai_api_key and self.openai_api_key.strip())


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Upload / parsing
    max_file_size_mb: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum file size accepted for upload (MB)"
    )
    csv_encoding: str = Field(
        default="utf-8-sig",
        description="Primary CSV encoding (BOM tolerated)"
    )
    csv_fallback_encoding: Optional[str] = Field(
        default="cp949",
        description="Encoding retried when the primary one cannot decode the file"
    )

    # Export
    downloads_dir: str = Field(
        default="./downloads",
        description="Directory where exported CSV files are saved"
    )

    # Selection
    preserve_manual_edits: bool = Field(
        default=False,
        description="Drop late AI suggestions once the user has edited the selection"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


@lru_cache
def get_llm_settings() -> LLMSettings:
    """Get cached LLM settings."""
    return LLMSettings()
