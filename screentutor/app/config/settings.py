"""
Application settings using Pydantic Settings.

Loads configuration from environment variables and .env file. Only the
composition root reads these; provider code receives plain values.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation and defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")
    log_file: str = Field(default="", description="Optional log file path")
    cors_origins: str = Field(
        default="http://localhost:1420",
        description="Comma-separated CORS origins",
    )

    # Provider calls
    provider_timeout_seconds: float = Field(
        default=30.0, gt=0, le=300, description="Deadline for one provider call"
    )
    default_max_tokens: int = Field(
        default=2048, ge=1, description="Max output tokens when neither caller nor instance sets one"
    )

    # Health probes
    health_timeout_seconds: float = Field(
        default=10.0, gt=0, le=60, description="Deadline for a health probe chat call"
    )
    local_check_timeout_seconds: float = Field(
        default=5.0, gt=0, le=60, description="Deadline for the local /models reachability check"
    )
    health_degraded_threshold_seconds: float = Field(
        default=5.0, gt=0, description="Probe latency above which a provider is reported degraded"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
