"""Configuration management for the document classification service.

This module uses Pydantic Settings to load configuration from environment
variables. All settings are validated at startup to catch configuration
errors early.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All sensitive values (API keys, database credentials) must be
    provided via environment variables or .env file.
    """

    # Gemini API Configuration
    gemini_api_key: str = Field(
        ...,
        description="Google Gemini API key for OCR and generative classification"
    )

    # Supabase Configuration
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anonymous/service role key"
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Service role key (bypasses RLS); preferred over supabase_key when set"
    )

    # AI Model Configuration
    model_name: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model used for OCR and generative classification"
    )

    # Classification
    classification_strategy: Literal["keyword_matrix", "gemini"] = Field(
        default="keyword_matrix",
        description="Default classifier: deterministic keyword matrix or Gemini prompt"
    )
    pages_per_chunk: int = Field(
        default=3, ge=1,
        description="Maximum pages per classification chunk"
    )

    # Uploads
    max_upload_size_mb: int = Field(
        default=20, ge=1,
        description="Maximum upload size in megabytes"
    )

    # Rate limiting
    trusted_proxies: Optional[str] = Field(
        default=None,
        description="Comma-separated proxy IPs whose X-Forwarded-For header is trusted"
    )

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )

    @field_validator("gemini_api_key")
    @classmethod
    def validate_gemini_api_key(cls, v: str) -> str:
        """Validate that GEMINI_API_KEY is present and non-empty."""
        if not v or not v.strip():
            raise ValueError(
                "GEMINI_API_KEY must be set in environment variables. "
                "Get your API key from https://ai.google.dev/"
            )
        return v.strip()

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate that Supabase URL is present and properly formatted."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_URL must be set in environment variables")

        url = v.strip()
        if not url.startswith("https://"):
            raise ValueError(
                "SUPABASE_URL must start with https:// "
                f"(got: {url[:20]}...)"
            )

        return url

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Validate that Supabase key is present and non-empty."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_KEY must be set in environment variables")
        return v.strip()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    return Settings()
