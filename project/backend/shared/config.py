"""
Configuration management.

Centralized environment variable management and validation.
"""

from typing import Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore"
    )

    # Supabase configuration (job store + artifact storage)
    supabase_url: str
    supabase_service_key: str

    # Redis configuration (creation queue + poll scheduler)
    redis_url: str

    # API keys
    openai_api_key: str
    replicate_api_token: str

    # Reasoning service (any OpenAI-compatible chat completions endpoint)
    # REASONING_BASE_URL: leave unset to talk to api.openai.com
    reasoning_base_url: Optional[str] = None
    reasoning_model: str = "gemini-2.5-flash-lite"
    reasoning_max_output_tokens: int = 8192
    reasoning_seed: int = 0
    # Some structured-output backends only accept string enum members
    reasoning_string_enums_only: bool = True

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    service_version: str = "0.1.0"

    # Redis Queue configuration
    # REDIS_QUEUE_NAME: Optional override for queue name (defaults to "media_jobs_{environment}")
    redis_queue_name: Optional[str] = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # LOG_FILE: rotating JSON log file; console only when unset
    log_file: Optional[str] = None

    # Request compiler
    max_prompt_length: int = 10000
    compiler_max_attempts: int = 3

    # Job lifecycle
    job_ttl_seconds: int = 90 * 60
    poll_interval_seconds: float = 1.0
    # A claimed poll callback is handed out again after this long without an ack
    poll_lease_seconds: int = 60
    max_concurrent_jobs: int = 5
    jobs_table: str = "generation_jobs"

    # Artifact storage
    # STORAGE_SCHEME: scheme of canonical bucket-path locators ("gs://bucket/path")
    storage_scheme: str = "gs"
    output_bucket: str = "generated-media"
    signed_url_expiry_seconds: int = 86400

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate Supabase URL format."""
        if not v:
            raise ConfigError("SUPABASE_URL is required")
        if not v.startswith(("http://", "https://")):
            raise ConfigError("SUPABASE_URL must be a valid HTTP/HTTPS URL")
        return v

    @field_validator("supabase_service_key")
    @classmethod
    def validate_supabase_service_key(cls, v: str) -> str:
        """Validate Supabase service key format."""
        if not v:
            raise ConfigError("SUPABASE_SERVICE_KEY is required")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v:
            raise ConfigError("REDIS_URL is required")
        if not v.startswith(("redis://", "rediss://")):
            raise ConfigError("REDIS_URL must start with redis:// or rediss://")
        return v

    @field_validator("openai_api_key", "replicate_api_token")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """API keys must be present; formats differ between compatible providers."""
        if not v or not v.strip():
            raise ConfigError("API keys must not be empty")
        return v

    @field_validator("reasoning_base_url")
    @classmethod
    def validate_reasoning_base_url(cls, v: Optional[str]) -> Optional[str]:
        if v and not v.startswith(("http://", "https://")):
            raise ConfigError("REASONING_BASE_URL must be a valid HTTP/HTTPS URL")
        return v or None

    @field_validator("max_prompt_length", "compiler_max_attempts", "max_concurrent_jobs")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ConfigError(f"Value must be >= 1, got {v}")
        return v

    @field_validator("job_ttl_seconds", "poll_lease_seconds")
    @classmethod
    def validate_positive_seconds(cls, v: int) -> int:
        if v <= 0:
            raise ConfigError(f"Duration must be positive, got {v}")
        return v

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        if v < 0:
            raise ConfigError("POLL_INTERVAL_SECONDS must not be negative")
        return v

    @field_validator("storage_scheme")
    @classmethod
    def validate_storage_scheme(cls, v: str) -> str:
        """Scheme only, e.g. "gs" or "s3" (no "://")."""
        v = v.strip().lower()
        if not v.isalnum():
            raise ConfigError("STORAGE_SCHEME must be alphanumeric, e.g. 'gs'")
        return v

    @property
    def queue_name(self) -> str:
        """
        Get the Redis queue name, environment-aware.

        If REDIS_QUEUE_NAME is set, use that. Otherwise, derive from environment
        (e.g. "media_jobs_development") so local workers never consume
        production jobs.
        """
        if self.redis_queue_name:
            return self.redis_queue_name
        return f"media_jobs_{self.environment}"


# Singleton instance
try:
    settings = Settings()
except Exception as e:
    # Re-raise as ConfigError for consistency
    if isinstance(e, ConfigError):
        raise
    raise ConfigError(f"Failed to load configuration: {str(e)}") from e
