"""
Media Storage using Cloudinary

DESIGN DECISION: Payment QR codes and payment proofs are images that
must be viewable by every family member through a plain URL.
Cloudinary gives us:
1. Public, CDN-backed URLs
2. Reliable cloud infrastructure
3. Simple upload API

This service handles:
1. Decoding webcam screenshots (base64 data URLs)
2. Checking the bytes really are a supported image (Pillow)
3. Re-encoding payment proofs as JPEG
4. Uploading and returning the public URL

CRITICAL: We never upload bytes Pillow cannot open.
"""

import base64
import binascii
import hashlib
import re
from datetime import datetime, timezone
from io import BytesIO
from typing import Callable, Optional, Union

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from familyhub.config import AppSettings, CloudinarySettings, get_settings


class MediaStorageError(Exception):
    """Base exception for media storage errors."""
    pass


class UnsupportedImageError(MediaStorageError):
    """Bytes are not an image we accept."""
    pass


class MediaUploadError(MediaStorageError):
    """Failed to upload image to Cloudinary."""
    pass


class UploadedImage(BaseModel):
    """Result of an upload."""

    public_id: str
    url: str
    folder: str
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    size_bytes: int = Field(ge=0)
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# Pillow format name -> extension used in settings
_FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
}


def decode_data_url(data_url: str) -> bytes:
    """
    Decode a `data:image/...;base64,...` URL into bytes.

    Raises:
        UnsupportedImageError: If the URL is not base64 image data
    """
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:image/") or ";base64" not in header:
        raise UnsupportedImageError("Expected a base64 image data URL")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UnsupportedImageError(f"Invalid base64 image data: {e}")


class CloudinaryMediaStorage:
    """
    Object storage for member images.

    Folders:
        qr-codes/        UPI QR codes shown on a member's profile
        payment_proofs/  Screenshots/photos proving a transfer was paid
    """

    QR_FOLDER = "qr-codes"
    PROOF_FOLDER = "payment_proofs"

    def __init__(
        self,
        settings: Optional[CloudinarySettings] = None,
        app_settings: Optional[AppSettings] = None,
        uploader: Optional[Callable[..., dict]] = None,
    ):
        self._settings = settings or get_settings().cloudinary
        self._app_settings = app_settings or get_settings().app
        self._uploader = uploader or cloudinary.uploader.upload
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def _generate_public_id(
        self,
        image_bytes: bytes,
        filename: Optional[str] = None,
    ) -> str:
        """
        Generate a unique public ID.

        Format: {timestamp_ms}_{content_hash}[_{filename_stem}]
        """
        content_hash = hashlib.md5(image_bytes).hexdigest()[:8]
        timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        public_id = f"{timestamp}_{content_hash}"
        if filename:
            stem = re.sub(r"[^A-Za-z0-9_-]+", "-", filename.rsplit(".", 1)[0]).strip("-")
            if stem:
                public_id = f"{public_id}_{stem[:40]}"
        return public_id

    def _inspect_image(self, image_bytes: bytes) -> Image.Image:
        """
        Open the bytes with Pillow and enforce our limits.

        Returns the opened image (already loaded).
        """
        if not image_bytes:
            raise UnsupportedImageError("Image is empty")

        if len(image_bytes) > self._app_settings.max_upload_size_bytes:
            raise UnsupportedImageError(
                f"Image is larger than {self._app_settings.max_upload_size_mb} MB"
            )

        try:
            img = Image.open(BytesIO(image_bytes))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedImageError(f"Could not read image: {e}")

        extension = _FORMAT_EXTENSIONS.get(img.format or "")
        supported = self._app_settings.supported_formats_list
        if extension is None or (
            extension not in supported
            and not (extension == "jpg" and "jpeg" in supported)
        ):
            raise UnsupportedImageError(
                f"Unsupported image format: {img.format}. Allowed: {', '.join(supported)}"
            )

        return img

    @staticmethod
    def _to_jpeg(img: Image.Image, quality: int = 85) -> bytes:
        """Re-encode as JPEG (drops alpha, which JPEG cannot hold)."""
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        out = BytesIO()
        img.save(out, format="JPEG", quality=quality, optimize=True)
        return out.getvalue()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _upload(
        self,
        image_bytes: bytes,
        folder: str,
        width: int,
        height: int,
        filename: Optional[str] = None,
    ) -> UploadedImage:
        self._configure()

        public_id = self._generate_public_id(image_bytes, filename)
        try:
            result = self._uploader(
                image_bytes,
                public_id=public_id,
                folder=f"{self._settings.root_folder}/{folder}",
                resource_type="image",
                overwrite=False,
            )
        except cloudinary.exceptions.Error as e:
            raise MediaUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise MediaUploadError(f"Failed to upload image: {e}")

        url = result.get("secure_url", result.get("url", ""))
        if not url:
            raise MediaUploadError("No URL returned from Cloudinary")

        return UploadedImage(
            public_id=result.get("public_id", public_id),
            url=url,
            folder=folder,
            width=width,
            height=height,
            size_bytes=len(image_bytes),
        )

    async def upload_qr_code(
        self,
        image_bytes: bytes,
        filename: Optional[str] = None,
    ) -> UploadedImage:
        """
        Upload a member's UPI QR code as-is.

        QR codes are kept in their original format; re-encoding a
        PNG QR code as JPEG blurs the modules.
        """
        img = self._inspect_image(image_bytes)
        return await self._upload(
            image_bytes, self.QR_FOLDER, img.width, img.height, filename
        )

    async def upload_payment_proof(
        self,
        image: Union[bytes, str],
    ) -> UploadedImage:
        """
        Upload a payment proof.

        Args:
            image: Raw image bytes, or a base64 data URL as produced
                   by a webcam screenshot
        """
        image_bytes = decode_data_url(image) if isinstance(image, str) else image
        img = self._inspect_image(image_bytes)
        jpeg = self._to_jpeg(img)
        return await self._upload(jpeg, self.PROOF_FOLDER, img.width, img.height)
