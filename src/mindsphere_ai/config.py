"""Configuration management for MindSphere AI."""

from __future__ import annotations

from functools import lru_cache
from typing import Self

from pydantic import AliasChoices, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mindsphere_ai.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAYS,
    HEALTH_CHECK_INTERVAL,
    HEALTH_CHECK_TIMEOUT,
    PROVIDER_TIMEOUT,
)

VALID_ENVIRONMENTS = ("production", "staging", "development", "test")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="",
        populate_by_name=True,
    )

    # Hosted backends (all optional; a missing key registers a disabled entry)
    openai_api_key: SecretStr | None = Field(default=None, description="OpenAI API key")
    claude_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("claude_api_key", "anthropic_api_key"),
        description="Anthropic API key for Claude",
    )
    gemini_api_key: SecretStr | None = Field(default=None, description="Google Gemini API key")

    # Local model runtime
    ollama_url: str = Field(
        default="http://localhost:11434", description="Base URL of the Ollama runtime"
    )
    ollama_model: str = Field(default="llama3.1:8b", description="Default local model")

    # Model Configuration
    openai_model: str = Field(default="gpt-4o", description="Default OpenAI chat model")
    claude_model: str = Field(
        default="claude-3-5-sonnet-20241022", description="Default Claude model"
    )
    gemini_model: str = Field(default="gemini-1.5-flash", description="Default Gemini model")

    # Provider priorities (lower is preferred)
    openai_priority: int = Field(default=1, description="Routing priority for OpenAI")
    claude_priority: int = Field(default=2, description="Routing priority for Claude")
    gemini_priority: int = Field(default=3, description="Routing priority for Gemini")
    ollama_priority: int = Field(default=4, description="Routing priority for the local runtime")

    # Application
    environment: str = Field(default="production", description="Environment name")
    use_stub_adapter: bool = Field(
        default=False,
        description="Register the deterministic stub backend when no hosted key is configured",
    )

    # Health monitoring
    health_monitor_enabled: bool = Field(
        default=True, description="Run background provider probes"
    )
    health_check_interval: float = Field(
        default=HEALTH_CHECK_INTERVAL, description="Seconds between provider probes"
    )
    health_check_timeout: float = Field(
        default=HEALTH_CHECK_TIMEOUT, description="Timeout for a single probe (seconds)"
    )

    # Retry policy
    retry_max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES, description="Retries after the first attempt"
    )
    retry_delays: list[float] = Field(
        default_factory=lambda: list(DEFAULT_RETRY_DELAYS),
        description="Backoff schedule in seconds, indexed by retry number",
    )
    provider_timeout: float = Field(
        default=PROVIDER_TIMEOUT, description="Timeout for a single backend call (seconds)"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_to_file: bool = Field(default=False, description="Enable file-based logging")
    log_directory: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=52428800,  # 50MB
        description="Max size per log file before rotation",
    )
    log_file_backup_count: int = Field(
        default=10, description="Number of rotated log files to keep"
    )
    log_file_prefix: str = Field(default="mindsphere_ai", description="Prefix for log file names")

    @property
    def log_file_path(self) -> str:
        """Get the full log file path."""
        return f"{self.log_directory}/{self.log_file_prefix}.log"

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate the environment name."""
        value = v.strip().lower()
        if value not in VALID_ENVIRONMENTS:
            raise ValueError(f"environment must be one of {list(VALID_ENVIRONMENTS)}, got: {v}")
        return value

    @field_validator("health_check_interval", "health_check_timeout", "provider_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate that intervals and timeouts are positive."""
        if v <= 0:
            raise ValueError(f"Value must be positive, got: {v}")
        return v

    @field_validator("retry_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate the retry budget."""
        if v < 0:
            raise ValueError(f"retry_max_retries must not be negative, got: {v}")
        return v

    @field_validator("retry_delays")
    @classmethod
    def validate_retry_delays(cls, v: list[float]) -> list[float]:
        """Validate the backoff schedule."""
        if not v:
            raise ValueError("retry_delays must contain at least one delay")
        if any(delay < 0 for delay in v):
            raise ValueError(f"retry_delays must not contain negative values, got: {v}")
        return v

    @field_validator("ollama_url")
    @classmethod
    def validate_ollama_url(cls, v: str) -> str:
        """Validate the local runtime URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"ollama_url must be an http(s) URL, got: {v}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_stub_mode(self) -> Self:
        """Refuse the stub backend in production."""
        if self.use_stub_adapter and self.is_production:
            raise ValueError("use_stub_adapter cannot be enabled when environment is production")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
