# Backend/tests/fixtures/__init__.py
"""
Test fixtures for the Location Notebook API.

Factory functions and fakes:
- make_user() / auth_headers()
- make_location_payload()
- make_image_upload()
- FakePhotoStorage (records calls instead of talking to Cloudinary)
"""

from typing import Any, Dict, List, Optional, Tuple

from app.deps.auth import User, create_access_token
from services.photo_storage_service import PendingPhoto, PhotoStorageService, StoredImage

# Smallest valid-looking JPEG header; content is never decoded in tests.
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


def make_user(google_id: str = "google-alice", name: str = "Alice") -> User:
    """Factory function to create a token identity."""
    return User(
        google_id=google_id,
        email=f"{name.lower()}@example.com",
        name=name,
        picture=f"https://example.com/{name.lower()}.png",
    )


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def make_location_payload(
    name: str = "Galata Tower",
    latitude: float = 41.0256,
    longitude: float = 28.9744,
    description: str = "View over the Golden Horn",
) -> Dict[str, Any]:
    """Factory function to create a POST /api/locations body."""
    return {
        "name": name,
        "latitude": latitude,
        "longitude": longitude,
        "description": description,
    }


def make_image_upload(
    filename: str = "photo.jpg",
    content: bytes = JPEG_BYTES,
    content_type: str = "image/jpeg",
) -> Tuple[str, Tuple[str, bytes, str]]:
    """One multipart entry for the `photos` field."""
    return ("photos", (filename, content, content_type))


class FakePhotoStorage(PhotoStorageService):
    def __init__(self) -> None:
        super().__init__(folder="location-tracker")
        self.uploaded: List[str] = []
        self.deleted: List[str] = []
        self.fail_upload_at: Optional[int] = None
        self.fail_delete = False

    @property
    def is_configured(self) -> bool:
        return True

    async def upload(self, photo: PendingPhoto) -> StoredImage:
        if self.fail_upload_at is not None and len(self.uploaded) == self.fail_upload_at:
            raise RuntimeError("provider unavailable")
        public_id = f"{self.folder}/img{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return StoredImage(
            url=f"https://res.cloudinary.com/demo/image/upload/{public_id}.jpg",
            public_id=public_id,
            original_name=photo.filename,
        )

    async def delete(self, public_id: str) -> Dict[str, str]:
        if self.fail_delete:
            raise RuntimeError("provider unavailable")
        self.deleted.append(public_id)
        return {"result": "ok"}
