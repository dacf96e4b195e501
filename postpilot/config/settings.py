"""
Application Settings and Configuration

This module contains all configuration settings for PostPilot, including:
- Environment variables management
- Platform OAuth credentials and secrets
- Posting policy (quotas, rate limits, scheduling horizon)
- Storage and background job configuration
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    environment: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="CORS allowed origins"
    )
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Public URL of the dashboard, used in notification links"
    )

    # Storage Configuration
    storage_backend: str = Field(
        default="firestore",
        description="Document store backend: 'firestore' or 'memory'"
    )
    google_cloud_project: str = Field(default="", description="Google Cloud Project ID")
    google_application_credentials: str = Field(
        default="",
        description="Path to Google Cloud service account credentials"
    )
    firestore_database_id: str = Field(
        default="(default)",
        description="Firestore database ID"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL used by the sliding-window limiter"
    )

    # Security Configuration
    secret_key: str = Field(..., description="JWT secret key")
    algorithm: str = Field(default="HS256", description="JWT algorithm")
    access_token_expire_minutes: int = Field(
        default=30,
        description="JWT access token expiration in minutes"
    )
    cron_secret: str = Field(
        default="",
        description="Bearer secret required by the cron endpoint; empty disables it"
    )

    # LinkedIn API Configuration
    linkedin_client_id: str = Field(default="", description="LinkedIn API client ID")
    linkedin_client_secret: str = Field(default="", description="LinkedIn API client secret")

    # Twitter / X API Configuration
    x_client_id: str = Field(default="", description="Twitter/X OAuth 2.0 client ID")
    x_client_secret: str = Field(default="", description="Twitter/X OAuth 2.0 client secret")

    # Pinterest API Configuration
    pinterest_app_id: str = Field(default="", description="Pinterest app ID")
    pinterest_app_secret: str = Field(default="", description="Pinterest app secret")

    # Outbound HTTP
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for platform API requests"
    )

    # Posting Policy
    min_seconds_between_posts: int = Field(
        default=30,
        description="Minimum gap between two posts on the same connected account"
    )
    max_schedule_days_ahead: int = Field(
        default=90,
        description="How far into the future a post may be scheduled"
    )
    duplicate_window_hours: int = Field(
        default=24,
        description="Window in which identical content is rejected as a duplicate"
    )
    pending_payment_expiry_hours: int = Field(
        default=24,
        description="Age after which pending transactions and invoices are failed"
    )
    metrics_window_days: int = Field(
        default=60,
        description="How far back posted content is polled for metrics"
    )
    social_post_rate_limit: int = Field(
        default=30,
        description="Publish requests allowed per user per window"
    )
    social_post_rate_window_seconds: int = Field(
        default=3600,
        description="Sliding window length for publish requests"
    )

    # Background Scheduler
    enable_background_scheduler: bool = Field(
        default=False,
        description="Run the in-process scheduler alongside the API"
    )
    publish_interval_seconds: int = Field(default=60, description="Due-post dispatch interval")
    metrics_interval_seconds: int = Field(default=3600, description="Metrics collection interval")
    payments_interval_seconds: int = Field(default=3600, description="Payment expiry interval")
    quota_reset_interval_seconds: int = Field(default=3600, description="Quota reset check interval")

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
