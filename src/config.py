"""Configuration management for the TinyDates service."""

from typing import Any, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./tinydates.db"
    DB_POOL_TIMEOUT: float = 5.0
    DB_STATEMENT_TIMEOUT_MS: int = 5000

    # Redis Configuration (sessions fall back to in-memory when unset)
    REDIS_URL: Optional[str] = None
    REDIS_SOCKET_TIMEOUT: float = 2.0

    # Sentry Configuration
    SENTRY_DSN: str | None = None

    # Application Configuration
    APP_NAME: str = "TinyDates"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEBUG: bool = Field(default=False)

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # Session Configuration
    SESSION_TTL_SECONDS: Optional[int] = None
    TOKEN_LENGTH: int = 20

    # Generated Profile Configuration
    MAX_GENERATED_AGE: int = 120
    MAX_GENERATED_LOCATION: int = 50

    @field_validator("DEBUG", mode="before")
    @classmethod
    def set_debug(cls, v: Any, info: ValidationInfo) -> bool:
        """Enable debug mode if ENVIRONMENT is development."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v:
            return v.lower() in ("1", "true", "yes")
        return bool(info.data.get("ENVIRONMENT", "").lower() == "development")

    @field_validator("SESSION_TTL_SECONDS")
    @classmethod
    def validate_session_ttl(cls, v: Optional[int]) -> Optional[int]:
        """Treat a non-positive TTL as "no expiry"."""
        if v is not None and v <= 0:
            return None
        return v

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore")


# Create a global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the settings instance."""
    return settings
