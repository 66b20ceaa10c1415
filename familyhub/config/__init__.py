"""Configuration package."""

from familyhub.config.settings import (
    AppSettings,
    CloudinarySettings,
    DataServiceSettings,
    GeminiSettings,
    PaymentGatewaySettings,
    RecommendationSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CloudinarySettings",
    "DataServiceSettings",
    "GeminiSettings",
    "PaymentGatewaySettings",
    "RecommendationSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
