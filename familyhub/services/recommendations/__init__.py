"""Recommendation services package."""

from familyhub.services.recommendations.client import (
    DietContext,
    HealthContext,
    MedicalHistoryItem,
    MedicationItem,
    RecommendationService,
    RecommendationServiceError,
    WeightGoal,
)

__all__ = [
    "DietContext",
    "HealthContext",
    "MedicalHistoryItem",
    "MedicationItem",
    "RecommendationService",
    "RecommendationServiceError",
    "WeightGoal",
]
