"""
Application Settings for Zomieks

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Payment gateways are optional: an adapter whose credentials are missing
    reports itself as not configured instead of failing at startup.
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Public base URL used to build gateway callback and redirect URLs
    app_url: str = "http://localhost:3000"

    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    # Session Store (Redis)
    redis_url: str = "redis://localhost:6379/0"
    session_cookie_name: str = "zomieks_session"
    session_ttl_seconds: int = 7 * 24 * 60 * 60
    session_index_limit: int = 10

    # Password hashing (argon2id)
    argon2_memory_cost: int = 19456  # KiB
    argon2_time_cost: int = 2
    argon2_parallelism: int = 1

    # Ozow (instant EFT)
    ozow_base_url: str = "https://api.ozow.com"
    ozow_payment_url: str = "https://pay.ozow.com"
    ozow_site_code: Optional[str] = None
    ozow_private_key: Optional[str] = None
    ozow_api_key: Optional[str] = None
    ozow_test_mode: bool = False

    # PayFast (card)
    payfast_merchant_id: Optional[str] = None
    payfast_merchant_key: Optional[str] = None
    payfast_passphrase: Optional[str] = None
    payfast_sandbox: bool = False
    payfast_validate_ip: bool = True

    # Outbound HTTP
    gateway_timeout_seconds: float = 15.0

    # Email (Resend)
    resend_api_key: Optional[str] = None
    email_from: str = "Zomieks <noreply@zomieks.co.za>"
    email_reply_to: str = "support@zomieks.co.za"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_environment(self) -> "Settings":
        """Normalize URLs and enforce production requirements."""
        self.app_url = self.app_url.rstrip("/")
        self.ozow_base_url = self.ozow_base_url.rstrip("/")
        self.ozow_payment_url = self.ozow_payment_url.rstrip("/")

        if self.environment.lower() == "production" and not self.database_url:
            raise ValueError("DATABASE_URL required when ENVIRONMENT=production")

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    @property
    def payfast_base_url(self) -> str:
        """PayFast host for the current mode."""
        if self.payfast_sandbox:
            return "https://sandbox.payfast.co.za"
        return "https://www.payfast.co.za"

    @property
    def ozow_configured(self) -> bool:
        return bool(self.ozow_site_code and self.ozow_private_key)

    @property
    def payfast_configured(self) -> bool:
        return bool(self.payfast_merchant_id and self.payfast_merchant_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
