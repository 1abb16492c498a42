"""
Unit tests for Pydantic Settings configuration.

Tests defaults, normalization and production validation.
"""

import pytest
from pydantic import ValidationError

from app.config.settings import Settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_has_defaults(self):
        settings = Settings()

        assert settings.session_cookie_name == "zomieks_session"
        assert settings.session_ttl_seconds == 7 * 24 * 60 * 60
        assert "http://localhost:3000" in settings.allowed_origins

    def test_urls_are_normalized(self):
        settings = Settings(
            app_url="https://zomieks.co.za/",
            ozow_payment_url="https://pay.ozow.com/",
        )

        assert settings.app_url == "https://zomieks.co.za"
        assert settings.ozow_payment_url == "https://pay.ozow.com"

    def test_production_requires_database(self):
        with pytest.raises(ValidationError):
            Settings(environment="production", database_url=None)

    def test_environment_flags(self):
        settings = Settings(environment="production", database_url="postgresql://db/zomieks")

        assert settings.is_production is True
        assert settings.is_development is False

    def test_payfast_host_follows_sandbox_flag(self):
        assert Settings(payfast_sandbox=True).payfast_base_url == "https://sandbox.payfast.co.za"
        assert Settings(payfast_sandbox=False).payfast_base_url == "https://www.payfast.co.za"

    def test_gateways_report_configuration(self):
        settings = Settings(
            ozow_site_code="ZOM-001",
            ozow_private_key=None,
            payfast_merchant_id="10000100",
            payfast_merchant_key="46f0cd694581a",
        )

        assert settings.ozow_configured is False
        assert settings.payfast_configured is True
