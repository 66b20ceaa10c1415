"""Services package."""

from familyhub.services.media import (
    CloudinaryMediaStorage,
    MediaStorageError,
    MediaUploadError,
    UnsupportedImageError,
)
from familyhub.services.recommendations import (
    RecommendationService,
    RecommendationServiceError,
)
from familyhub.services.storage import (
    AuditStorageInterface,
    AuthError,
    InMemoryDataService,
    NotFoundError,
    PostgrestClient,
    PostgrestDataService,
    RemoteDataService,
    RemoteError,
    TableAuditStorage,
)

__all__ = [
    # Media services
    "CloudinaryMediaStorage",
    "MediaStorageError",
    "MediaUploadError",
    "UnsupportedImageError",
    # Recommendation services
    "RecommendationService",
    "RecommendationServiceError",
    # Storage services
    "AuditStorageInterface",
    "AuthError",
    "InMemoryDataService",
    "NotFoundError",
    "PostgrestClient",
    "PostgrestDataService",
    "RemoteDataService",
    "RemoteError",
    "TableAuditStorage",
]
