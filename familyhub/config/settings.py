"""
Configuration Management for FamilyHub

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DataServiceSettings(BaseSettings):
    """Hosted table store (PostgREST + auth endpoint) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FAMILYHUB_DATA_",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Base URL of the hosted project, e.g. https://xyz.supabase.co"
    )
    anon_key: str = Field(
        ...,
        description="Public (anon) API key sent with every request"
    )
    schema_name: str = Field(
        default="public",
        description="Database schema exposed through the REST endpoint"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Transport timeout for table requests"
    )

    @field_validator('url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be joined safely."""
        return v.rstrip("/")

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1/"

    @property
    def auth_url(self) -> str:
        return f"{self.url}/auth/v1/"

    @property
    def functions_url(self) -> str:
        return f"{self.url}/functions/v1/"


class RecommendationSettings(BaseSettings):
    """Recommendation edge functions configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FAMILYHUB_RECOMMENDATIONS_",
        extra="ignore"
    )

    health_function: str = Field(
        default="health-recommendations",
        description="Function generating health recommendations"
    )
    diet_function: str = Field(
        default="generate-diet-plan",
        description="Function generating diet recommendations from a weekly mess"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for a recommendation request"
    )


class CloudinarySettings(BaseSettings):
    """Cloudinary object storage configuration (QR codes, payment proofs)."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore"
    )

    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    root_folder: str = Field(
        default="familyhub",
        description="Folder all uploads are placed under"
    )


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the diet advisor."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )


class PaymentGatewaySettings(BaseSettings):
    """Razorpay checkout widget configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RAZORPAY_",
        extra="ignore"
    )

    key_id: str = Field(
        ...,
        description="Public key id passed to the checkout widget"
    )
    currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="ISO currency code"
    )
    merchant_name: str = Field(
        default="FamilyHub",
        description="Name shown on the checkout widget"
    )
    theme_color: str = Field(
        default="#3B82F6",
        description="Checkout widget accent color"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp",
        description="Comma-separated list of supported image formats"
    )

    # Audit
    persist_audit_events: bool = Field(
        default=False,
        description="Also write audit events to the audit_events table"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def data_service(self) -> DataServiceSettings:
        return DataServiceSettings()

    @property
    def recommendations(self) -> RecommendationSettings:
        return RecommendationSettings()

    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def payments(self) -> PaymentGatewaySettings:
        return PaymentGatewaySettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings(names: Optional[list[str]] = None) -> dict[str, bool]:
    """
    Validate settings sections are properly configured.

    Returns a dict of {section_name: is_valid}, plus a
    "<section>_error" entry for every section that failed to load.
    """
    sections = names or [
        "data_service",
        "recommendations",
        "cloudinary",
        "gemini",
        "payments",
        "app",
    ]
    results = {}
    settings = get_settings()

    for name in sections:
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
