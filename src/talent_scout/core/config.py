"""
Configuration management for Talent Scout.

Uses Pydantic settings for type-safe configuration with environment variable support.
All settings can be overridden via environment variables.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables, e.g.
    SUPABASE_URL="https://xyz.supabase.co" or RETRY_MAX_ATTEMPTS=5.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ==========================================================================
    # Application Metadata
    # ==========================================================================
    app_name: str = "Talent Scout API"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = Field(default="development", description="development, staging, production")

    # ==========================================================================
    # Backend (hosted Postgres + auth)
    # ==========================================================================
    supabase_url: Optional[str] = Field(
        default=None,
        description="Base URL of the hosted backend, e.g. https://xyz.supabase.co",
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Public anon key sent as the apikey header",
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Service role key, only needed for admin user cleanup",
    )
    supabase_schema: str = "public"
    application_name: str = "talent-scout"
    request_timeout: float = Field(default=30.0, gt=0)

    @computed_field
    @property
    def backend_configured(self) -> bool:
        """Whether the backend URL and key are both present."""
        return bool(self.supabase_url and self.supabase_anon_key)

    # ==========================================================================
    # Retry Policy
    # ==========================================================================
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay: float = Field(default=1.0, ge=0, description="Seconds before the first retry")
    retry_backoff_multiplier: float = Field(default=2.0, ge=1.0)

    # ==========================================================================
    # Recommendations
    # ==========================================================================
    recommendation_limit: int = Field(default=3, ge=1, le=20)
    recommendation_pool_size: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Candidates fetched from the backend before ranking",
    )

    # ==========================================================================
    # Messaging
    # ==========================================================================
    message_poll_interval: float = Field(
        default=2.0,
        gt=0,
        description="Seconds between polls of the messages table for subscriptions",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    cors_allow_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        description="Allowed CORS origins. Set to ['*'] for development.",
    )
    cors_allow_methods: list[str] = ["GET", "POST", "PATCH", "OPTIONS"]
    cors_allow_headers: list[str] = ["Accept", "Authorization", "Content-Type"]
    cors_allow_credentials: bool = False

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins, adding production URLs if in production."""
        origins = list(self.cors_allow_origins)

        if self.environment == "production":
            prod_origins = os.getenv("CORS_PRODUCTION_ORIGINS", "")
            if prod_origins:
                origins.extend(o.strip() for o in prod_origins.split(",") if o.strip())

        return origins


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
