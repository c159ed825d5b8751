"""
Photo storage on Cloudinary.

Handles upload validation, uploads into the notebook folder, remote deletion
and the configuration report used by /api/cloudinary-test.
"""
from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import cloudinary
import cloudinary.api
import cloudinary.uploader

from app.config import settings
from app.core.logging import get_logger

logger = get_logger()

MAX_FILES_PER_REQUEST = 5
MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024  # 5MB
ALLOWED_FORMATS = ["jpeg", "jpg", "png", "gif", "webp"]
UPLOAD_TRANSFORMATION = [
    {"width": 800, "height": 600, "crop": "limit"},
    {"quality": "auto:good"},
]


class PhotoValidationError(ValueError):
    """Upload rejected before anything was sent to the provider."""


class PhotoStorageNotConfigured(RuntimeError):
    pass


@dataclass
class PendingPhoto:
    filename: str
    content_type: Optional[str]
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class StoredImage:
    url: str
    public_id: str
    original_name: str = ""


def validate_photo_uploads(photos: Sequence[Any]) -> None:
    """
    Accepts PendingPhoto or incoming UploadFile objects, so limits can be
    checked before any content is read. An unknown size (None) passes here.

    Raises:
        PhotoValidationError: too many files, a non-image MIME type or a file over 5MB
    """
    if not photos:
        raise PhotoValidationError("No photos provided")
    if len(photos) > MAX_FILES_PER_REQUEST:
        raise PhotoValidationError(
            f"Too many photos: {len(photos)}. Max {MAX_FILES_PER_REQUEST} per upload"
        )
    for photo in photos:
        content_type = (photo.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise PhotoValidationError("Only image files are allowed")
        size = photo.size or 0
        if size > MAX_FILE_SIZE_BYTES:
            raise PhotoValidationError(
                f"File too large: {photo.filename} ({size} bytes). Max size: 5MB"
            )


def configuration_method() -> str:
    if settings.CLOUDINARY_URL:
        return "CLOUDINARY_URL"
    if settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY and settings.CLOUDINARY_API_SECRET:
        return "Individual Variables"
    return "NOT_CONFIGURED"


def _flag(value: Optional[str]) -> str:
    return "SET" if value else "NOT_SET"


def configuration_report() -> Dict[str, Any]:
    method = configuration_method()
    return {
        "cloudinary_configured": method != "NOT_CONFIGURED",
        "configuration_method": method,
        "environment_variables": {
            "CLOUDINARY_URL": _flag(settings.CLOUDINARY_URL),
            "CLOUDINARY_CLOUD_NAME": _flag(settings.CLOUDINARY_CLOUD_NAME),
            "CLOUDINARY_API_KEY": _flag(settings.CLOUDINARY_API_KEY),
            "CLOUDINARY_API_SECRET": _flag(settings.CLOUDINARY_API_SECRET),
        },
        "folder": settings.CLOUDINARY_FOLDER,
    }


class PhotoStorageService:
    """
    Thin async wrapper around the Cloudinary SDK. The SDK is blocking, so
    every call runs in a worker thread.
    """

    def __init__(self, folder: Optional[str] = None):
        self.folder = folder or settings.CLOUDINARY_FOLDER
        self._configured = False

    @property
    def is_configured(self) -> bool:
        return configuration_method() != "NOT_CONFIGURED"

    def _ensure_configured(self) -> None:
        if self._configured:
            return
        method = configuration_method()
        if method == "CLOUDINARY_URL":
            cloudinary.config(cloudinary_url=settings.CLOUDINARY_URL, secure=True)
        elif method == "Individual Variables":
            cloudinary.config(
                cloud_name=settings.CLOUDINARY_CLOUD_NAME,
                api_key=settings.CLOUDINARY_API_KEY,
                api_secret=settings.CLOUDINARY_API_SECRET,
                secure=True,
            )
        else:
            raise PhotoStorageNotConfigured(
                "Cloudinary is not configured. Set CLOUDINARY_URL or "
                "CLOUDINARY_CLOUD_NAME / CLOUDINARY_API_KEY / CLOUDINARY_API_SECRET in Backend/.env"
            )
        self._configured = True

    async def upload(self, photo: PendingPhoto) -> StoredImage:
        self._ensure_configured()
        result = await asyncio.to_thread(
            cloudinary.uploader.upload,
            io.BytesIO(photo.content),
            folder=self.folder,
            resource_type="image",
            allowed_formats=ALLOWED_FORMATS,
            transformation=UPLOAD_TRANSFORMATION,
            filename_override=Path(photo.filename or "photo").name,
        )
        stored = StoredImage(
            url=result.get("secure_url") or result.get("url", ""),
            public_id=result["public_id"],
            original_name=photo.filename or "",
        )
        logger.info(
            "photo_uploaded",
            public_id=stored.public_id,
            file_size=photo.size,
            filename=photo.filename,
        )
        return stored

    async def upload_many(self, photos: Sequence[PendingPhoto]) -> List[StoredImage]:
        """
        Upload a batch. If one upload fails, the images already uploaded in
        this batch are removed again and the error is re-raised.
        """
        stored: List[StoredImage] = []
        try:
            for photo in photos:
                stored.append(await self.upload(photo))
        except Exception:
            logger.warning(
                "photo_batch_upload_failed",
                uploaded=len(stored),
                requested=len(photos),
                exc_info=True,
            )
            for image in stored:
                await self.delete_quietly(image.public_id)
            raise
        return stored

    async def delete(self, public_id: str) -> Dict[str, Any]:
        self._ensure_configured()
        result = await asyncio.to_thread(cloudinary.uploader.destroy, public_id)
        logger.info("photo_deleted", public_id=public_id, result=result.get("result"))
        return result

    async def delete_quietly(self, public_id: str) -> bool:
        """
        Remote cleanup is best effort: failures are logged, never raised.
        """
        try:
            await self.delete(public_id)
            return True
        except Exception as e:
            logger.warning("photo_delete_failed", public_id=public_id, error=str(e))
            return False

    async def details(self, public_id: str) -> Dict[str, Any]:
        self._ensure_configured()
        return await asyncio.to_thread(cloudinary.api.resource, public_id)

    async def ping(self) -> bool:
        try:
            self._ensure_configured()
            await asyncio.to_thread(cloudinary.api.ping)
        except Exception as e:
            logger.warning("cloudinary_ping_failed", error=str(e))
            return False
        logger.info("cloudinary_ping_ok", folder=self.folder)
        return True


_photo_storage: Optional[PhotoStorageService] = None


def get_photo_storage() -> PhotoStorageService:
    global _photo_storage
    if _photo_storage is None:
        _photo_storage = PhotoStorageService()
    return _photo_storage
