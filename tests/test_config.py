"""
Tests for environment-driven configuration
"""

import pytest

from familyhub.config import (
    AppSettings,
    DataServiceSettings,
    PaymentGatewaySettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDataServiceSettings:
    """Tests for the table store endpoint settings."""

    def test_urls_from_env(self, monkeypatch):
        monkeypatch.setenv("FAMILYHUB_DATA_URL", "https://demo.example.co/")
        monkeypatch.setenv("FAMILYHUB_DATA_ANON_KEY", "anon")

        settings = DataServiceSettings()

        assert settings.url == "https://demo.example.co"
        assert settings.rest_url == "https://demo.example.co/rest/v1/"
        assert settings.auth_url == "https://demo.example.co/auth/v1/"
        assert settings.functions_url == "https://demo.example.co/functions/v1/"
        assert settings.schema_name == "public"


class TestAppSettings:
    """Tests for upload limits and flags."""

    def test_defaults(self):
        settings = AppSettings(_env_file=None)
        assert settings.supported_formats_list == ["jpg", "jpeg", "png", "webp"]
        assert settings.max_upload_size_bytes == 10 * 1024 * 1024
        assert settings.persist_audit_events is False

    def test_format_list_is_normalised(self):
        settings = AppSettings(_env_file=None, supported_image_formats=" PNG, Gif ")
        assert settings.supported_formats_list == ["png", "gif"]

    def test_payment_defaults(self, monkeypatch):
        monkeypatch.setenv("RAZORPAY_KEY_ID", "rzp_test_123")
        settings = PaymentGatewaySettings()
        assert settings.currency == "INR"
        assert settings.merchant_name == "FamilyHub"


class TestValidateAllSettings:
    """Tests for the startup configuration report."""

    def test_reports_missing_sections(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("RAZORPAY_KEY_ID", "rzp_test_123")

        results = validate_all_settings(["gemini", "payments", "app"])

        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["payments"] is True
        assert results["app"] is True
