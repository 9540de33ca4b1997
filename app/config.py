# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.CAPTION_API_BASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # Auth and database are both hosted by Supabase

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key (RLS applies)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret; ES256 tokens are verified via JWKS"
    )

    # -------------------------------------------------------------------------
    # Captioning API
    # -------------------------------------------------------------------------

    CAPTION_API_BASE_URL: str = Field(
        default="https://api.almostcrackd.ai",
        description="Base URL of the external image captioning pipeline"
    )

    SUPPORTED_IMAGE_TYPES: str = Field(
        default="image/jpeg,image/jpg,image/png,image/webp,image/gif,image/heic",
        description="MIME types accepted for captioning (comma-separated)"
    )

    MAX_UPLOAD_SIZE_MB: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum image upload size in MB"
    )

    # -------------------------------------------------------------------------
    # Session / Protected Page
    # -------------------------------------------------------------------------

    SITE_URL: str = Field(
        default="http://localhost:8000",
        description="Public base URL, used to build the OAuth redirect"
    )

    SESSION_COOKIE_SECURE: bool = Field(
        default=False,
        description="Mark session cookies as Secure (enable behind HTTPS)"
    )

    CAPTIONS_PAGE_SIZE: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Number of caption rows shown on the protected page"
    )

    PIPELINE_IDLE_TTL_SECONDS: int = Field(
        default=3600,
        ge=0,
        description="How long a finished run's state is kept before the pipeline is dropped"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging)"
    )

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def supported_image_types(self) -> frozenset[str]:
        """
        Parse SUPPORTED_IMAGE_TYPES into a lowercase set.

        Example: "image/PNG, image/gif" -> {"image/png", "image/gif"}
        """
        return frozenset(
            t.strip().lower() for t in self.SUPPORTED_IMAGE_TYPES.split(",") if t.strip()
        )

    @property
    def max_upload_size_bytes(self) -> int:
        """Convert MB to bytes for file size validation."""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def oauth_redirect_url(self) -> str:
        return f"{self.SITE_URL.rstrip('/')}/api/v1/auth/callback"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
