"""
Configuration management using Pydantic Settings.
All environment variables are loaded and validated here.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ContentDefaults:
    """
    Process-wide content defaults handed to the type registry and content service.

    Built once from Settings so the content core never reads global state.
    """

    default_upload_type: Optional[str]
    default_content_duration: int


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Application Configuration
    # ================================
    APP_NAME: str = "Feedboard"
    APP_ENV: Literal["development", "testing", "staging", "production"] = "development"
    DEBUG: bool = True
    SECRET_KEY: str = Field(..., min_length=32)

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def parse_origins(cls, v: str) -> List[str]:
        """Parse comma-separated origins into list."""
        return [origin.strip() for origin in v.split(",")]

    # ================================
    # Database Configuration
    # ================================
    DATABASE_URL: str = Field(..., description="Database connection string")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # ================================
    # JWT Authentication
    # ================================
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    JWT_ALGORITHM: str = "HS256"

    # ================================
    # Content Configuration
    # ================================
    # Type used when /contents/new or create names no (or an unknown) type.
    # Leaving it unset makes "new content" requests a fatal configuration error.
    DEFAULT_UPLOAD_TYPE: Optional[str] = "Graphic"
    DEFAULT_CONTENT_DURATION: int = Field(8, ge=0)

    # Where stale content ids are redirected instead of a 404
    BROWSE_PATH: str = "/browse"

    # ================================
    # Render Cache (Redis)
    # ================================
    REDIS_URL: str = "redis://redis:6379/0"
    RENDER_CACHE_ENABLED: bool = False
    RENDER_CACHE_TTL_SECONDS: int = 3600

    # ================================
    # Celery Configuration
    # ================================
    CELERY_BROKER_URL: str = "redis://redis:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/1"
    CELERY_TASK_SERIALIZER: str = "json"
    CELERY_RESULT_SERIALIZER: str = "json"
    # Celery accept content as comma-separated string, we'll parse it
    CELERY_ACCEPT_CONTENT: str = "json"
    CELERY_TIMEZONE: str = "UTC"
    CELERY_ENABLE_UTC: bool = True

    @property
    def celery_accept_content_list(self) -> List[str]:
        """Parse CELERY_ACCEPT_CONTENT into a list."""
        return [item.strip() for item in self.CELERY_ACCEPT_CONTENT.split(",")]

    # ================================
    # Logging Configuration
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    # ================================
    # Feature Flags
    # ================================
    ENABLE_NOTIFICATIONS: bool = True

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.APP_ENV == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running under the test suite."""
        return self.APP_ENV == "testing"

    def content_defaults(self) -> ContentDefaults:
        """Snapshot the content-related settings for injection."""
        default_type = (self.DEFAULT_UPLOAD_TYPE or "").strip() or None
        return ContentDefaults(
            default_upload_type=default_type,
            default_content_duration=self.DEFAULT_CONTENT_DURATION,
        )


# Global settings instance
settings = Settings()
