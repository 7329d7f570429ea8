"""
Application configuration using pydantic-settings.
"""
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "DIY Genie"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Deployment posture. Dev-only overrides below are rejected in production.
    environment: Literal["production", "development", "test"] = "production"

    # Database
    database_url: str = "sqlite+aiosqlite:///./diygenie.db"

    # Service API key + rate limiting (applies to /api routes when set)
    api_key: Optional[str] = None
    rate_limit_max_requests: int = 120
    rate_limit_window_seconds: int = 60

    # Caller identity fallback for local development only
    dev_user_id: Optional[str] = None

    # Entitlements
    free_quota_override: Optional[int] = Field(None, ge=0)
    entitlement_fail_open: bool = False

    # Projects
    project_name_min_length: int = Field(3, ge=1)
    single_preview_per_project: bool = False

    # Preview provider: "stub" or "decor8" (remote image service)
    preview_provider: str = "stub"
    decor8_base_url: Optional[str] = None
    decor8_api_key: Optional[str] = None
    preview_stub_mode: Literal["echo", "placeholder"] = "echo"
    preview_placeholder_url: str = "https://picsum.photos/seed/{seed}/1024/768"

    # Plan provider: "stub" or "openai"
    plan_provider: str = "openai"
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"

    # Background execution
    preview_stub_delay_seconds: float = Field(5.0, ge=0)
    plan_stub_delay_seconds: float = Field(2.0, ge=0)
    provider_timeout_seconds: float = Field(30.0, gt=0)
    preview_poll_interval_seconds: float = Field(2.0, ge=0)
    operation_deadline_seconds: int = Field(180, ge=1)

    # Design suggestions cache
    suggestions_cache_ttl_seconds: float = Field(60.0, gt=0)
    suggestions_cache_max_entries: int = Field(256, ge=1)

    # Billing (Stripe)
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    casual_price_id: Optional[str] = None
    pro_price_id: Optional[str] = None
    checkout_success_url: str = "https://example.com/success"
    checkout_cancel_url: str = "https://example.com/cancel"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def preview_mode(self) -> str:
        """'live' when a remote image service is configured, else 'stub'."""
        if self.preview_provider.lower() != "decor8":
            return "stub"
        if not self.decor8_base_url or self.decor8_base_url.startswith("stub"):
            return "stub"
        return "live"

    @property
    def plan_mode(self) -> str:
        if self.plan_provider.lower() == "openai" and self.openai_api_key:
            return "live"
        return "stub"

    @model_validator(mode="after")
    def _reject_dev_overrides_in_production(self) -> "Settings":
        if not self.is_production:
            return self
        offending = []
        if self.free_quota_override is not None:
            offending.append("free_quota_override")
        if self.entitlement_fail_open:
            offending.append("entitlement_fail_open")
        if self.dev_user_id:
            offending.append("dev_user_id")
        if offending:
            raise ValueError(
                f"{', '.join(offending)} cannot be enabled when environment=production"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
