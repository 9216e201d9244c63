"""
Application Configuration Module

Centralizes all application settings using Pydantic Settings.
Environment variables are loaded from .env file automatically.

Usage:
    from config.settings import settings

    print(settings.DATABASE_URL)
    print(settings.PREVIEW_TTL_MINUTES)
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Variable names are case-insensitive.
    """

    # ==========================================================================
    # Database Configuration
    # ==========================================================================
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/snapvocab.db",
        description="Database connection string (sqlite+aiosqlite or postgresql)"
    )
    DATABASE_ECHO: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )

    # ==========================================================================
    # Media Storage
    # ==========================================================================
    UPLOADS_DIR: str = Field(
        default="./uploads",
        description="Root directory for uploaded images, audio and cache files"
    )
    UPLOADS_URL_PREFIX: str = Field(
        default="/uploads",
        description="Public URL prefix under which UPLOADS_DIR is served"
    )
    MAX_IMAGE_BYTES: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum accepted image upload size in bytes"
    )

    @property
    def uploads_path(self) -> Path:
        """Uploads directory as a Path."""
        return Path(self.UPLOADS_DIR)

    # ==========================================================================
    # Redis Configuration (content cache and rate limiting)
    # ==========================================================================
    REDIS_URL: Optional[str] = Field(
        default=None,
        description="Redis connection URL; file-backed cache is used when unset"
    )

    # ==========================================================================
    # Gemini (OCR, definitions, translations)
    # ==========================================================================
    GOOGLE_API_KEY: Optional[str] = Field(
        default=None,
        description="Google Gemini API key; offline placeholders are used when unset"
    )
    GEMINI_MODEL: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model used for OCR and dictionary lookups"
    )
    GEMINI_FORCE_MOCK: bool = Field(
        default=False,
        description="Use offline placeholders even when a key is configured"
    )

    # ==========================================================================
    # Azure Speech (text-to-speech)
    # ==========================================================================
    AZURE_SPEECH_API_KEY: Optional[str] = Field(
        default=None,
        description="Azure Speech subscription key; silent clips are used when unset"
    )
    AZURE_SPEECH_REGION: str = Field(
        default="eastus",
        description="Azure Speech region"
    )
    AZURE_SPEECH_VOICE: str = Field(
        default="en-US-AriaNeural",
        description="Neural voice used for synthesized audio"
    )
    AZURE_SPEECH_FORCE_MOCK: bool = Field(
        default=False,
        description="Use silent clips even when a key is configured"
    )

    # ==========================================================================
    # Provider Resilience
    # ==========================================================================
    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Per-attempt timeout for external provider calls"
    )
    PROVIDER_MAX_RETRIES: int = Field(
        default=1,
        description="Retries after the first failed provider attempt"
    )

    # ==========================================================================
    # Ingestion & Review
    # ==========================================================================
    PREVIEW_TTL_MINUTES: int = Field(
        default=10,
        description="Lifetime of an unconfirmed image import preview"
    )
    DUE_REVIEW_LIMIT: int = Field(
        default=20,
        description="Default number of due reviews returned per request"
    )
    WORD_LIST_LIMIT: int = Field(
        default=500,
        description="Default number of words returned by the word list"
    )

    # ==========================================================================
    # CORS Configuration
    # ==========================================================================
    CORS_ORIGINS: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    @property
    def cors_origins_list(self) -> list:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )
    APP_NAME: str = Field(
        default="SnapVocab",
        description="Application name for OpenAPI docs"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application version"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Singleton instance for easy import
settings = get_settings()
