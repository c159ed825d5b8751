from __future__ import annotations

import os

# Tests always run against the in-memory store with a fixed signing key.
os.environ["MONGODB_URI"] = ""
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"
for _key in ("CLOUDINARY_URL", "CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
    os.environ[_key] = ""

from typing import Dict

import pytest
from fastapi.testclient import TestClient

from app.main import app
from services.location_store_service import memory_store
from services.photo_storage_service import get_photo_storage
from tests.fixtures import FakePhotoStorage, auth_headers, make_user


@pytest.fixture
def photo_storage() -> FakePhotoStorage:
    return FakePhotoStorage()


@pytest.fixture
def client(photo_storage: FakePhotoStorage):
    memory_store.reset()
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_photo_storage, None)
    memory_store.reset()


@pytest.fixture
def alice_headers() -> Dict[str, str]:
    return auth_headers(make_user("google-alice", "Alice"))


@pytest.fixture
def bob_headers() -> Dict[str, str]:
    return auth_headers(make_user("google-bob", "Bob"))
