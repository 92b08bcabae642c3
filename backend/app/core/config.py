"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore", # Allow extra env vars without failing
    )

    # App
    app_name: str = "SalesPulse"
    app_version: str = "0.1.0"
    environment: str = "development"  # development | production
    debug: bool = False
    log_level: str = "INFO"
    # Secret key MUST be provided via environment (e.g. SECRET_KEY in .env)
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Auth Passwords
    admin_password: str = "admin" # Default for safety, override in .env
    manager_password: str = "manager"

    # API
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Database
    database_url: str = "sqlite+aiosqlite:///./salespulse.db"
    db_ssl_mode: str = "disable" # "require" for production
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Multi-tenancy
    default_tenant_id: str = "default"

    # AI provider: none | mock | openai | anthropic | gemini | on-prem
    ai_provider: str = "none"
    ai_model: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    onprem_llm_url: Optional[str] = None
    ai_request_timeout_seconds: float = 60.0

    # Sales scan
    ai_scan_max_tokens: int = 4000
    ai_scan_temperature: float = 0.5
    scan_candidate_limit: int = 20
    scan_dormant_limit: int = 10
    cron_secret: Optional[str] = None
    cron_max_tenants: int = 100

    # In-process scheduler (off by default; external cron calls /cron/ai-sales-scan)
    sales_scan_schedule_enabled: bool = False
    sales_scan_interval_seconds: int = 6 * 3600

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
