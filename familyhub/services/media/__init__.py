"""Media storage services package."""

from familyhub.services.media.cloudinary_storage import (
    CloudinaryMediaStorage,
    MediaStorageError,
    MediaUploadError,
    UnsupportedImageError,
    UploadedImage,
    decode_data_url,
)

__all__ = [
    "CloudinaryMediaStorage",
    "MediaStorageError",
    "MediaUploadError",
    "UnsupportedImageError",
    "UploadedImage",
    "decode_data_url",
]
