# -*- coding: utf-8 -*-
"""
LocationStore: persistence for notebook locations.

Two interchangeable implementations with the same async interface:
- MemoryLocationStore: process-local list, used when MongoDB is unavailable
- MongoLocationStore: the `locations` collection

Every lookup is scoped by owner: an unknown id, a malformed id and another
user's id all behave the same (None), so callers cannot probe foreign ids.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument

from app.core.logging import get_logger
from app.models.location import Location, LocationCreate, Photo, utcnow
from services import db_service

logger = get_logger()


def new_object_id() -> str:
    return str(ObjectId())


class LocationStore(ABC):
    source: str

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Location]:
        """Locations owned by user_id, newest first."""

    @abstractmethod
    async def create(self, user_id: str, payload: LocationCreate) -> Location:
        ...

    @abstractmethod
    async def get_owned(self, location_id: str, user_id: str) -> Optional[Location]:
        ...

    @abstractmethod
    async def add_photos(self, location_id: str, user_id: str, photos: List[Photo]) -> Optional[Location]:
        ...

    @abstractmethod
    async def remove_photo(self, location_id: str, user_id: str, public_id: str) -> Optional[Location]:
        ...

    @abstractmethod
    async def delete_owned(self, location_id: str, user_id: str) -> Optional[Location]:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


def _build_location(user_id: str, payload: LocationCreate, *, location_id: Optional[str] = None,
                    timestamp: Optional[datetime] = None) -> Location:
    return Location(
        id=location_id or new_object_id(),
        name=payload.name or "",
        latitude=float(payload.latitude),
        longitude=float(payload.longitude),
        description=payload.description or "",
        timestamp=timestamp or utcnow(),
        user_id=user_id,
        photos=[],
    )


# --------------------------------------------------------------------
# In-memory
# --------------------------------------------------------------------

class MemoryLocationStore(LocationStore):
    source = db_service.SOURCE_MEMORY

    def __init__(self) -> None:
        self._items: List[Location] = []
        self._lock = asyncio.Lock()

    def reset(self) -> None:
        self._items = []

    def _find(self, location_id: str, user_id: str) -> Optional[Location]:
        for item in self._items:
            if item.id == location_id and item.user_id == user_id:
                return item
        return None

    async def list_for_user(self, user_id: str) -> List[Location]:
        owned = [item.model_copy(deep=True) for item in self._items if item.user_id == user_id]
        owned.sort(key=lambda loc: loc.timestamp, reverse=True)
        return owned

    async def create(self, user_id: str, payload: LocationCreate) -> Location:
        location = _build_location(user_id, payload)
        async with self._lock:
            self._items.append(location)
        return location.model_copy(deep=True)

    async def get_owned(self, location_id: str, user_id: str) -> Optional[Location]:
        found = self._find(location_id, user_id)
        return found.model_copy(deep=True) if found else None

    async def add_photos(self, location_id: str, user_id: str, photos: List[Photo]) -> Optional[Location]:
        async with self._lock:
            found = self._find(location_id, user_id)
            if found is None:
                return None
            found.photos.extend(p.model_copy() for p in photos)
            return found.model_copy(deep=True)

    async def remove_photo(self, location_id: str, user_id: str, public_id: str) -> Optional[Location]:
        async with self._lock:
            found = self._find(location_id, user_id)
            if found is None:
                return None
            found.photos = [p for p in found.photos if p.public_id != public_id]
            return found.model_copy(deep=True)

    async def delete_owned(self, location_id: str, user_id: str) -> Optional[Location]:
        async with self._lock:
            found = self._find(location_id, user_id)
            if found is None:
                return None
            self._items.remove(found)
            return found

    async def count(self) -> int:
        return len(self._items)


memory_store = MemoryLocationStore()


# --------------------------------------------------------------------
# MongoDB
# --------------------------------------------------------------------

def _to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _photo_to_document(photo: Photo) -> Dict[str, Any]:
    return {
        "_id": _to_object_id(photo.id) or photo.id,
        "url": photo.url,
        "publicId": photo.public_id,
        "originalName": photo.original_name,
        "uploadedAt": photo.uploaded_at,
    }


def location_from_document(doc: Dict[str, Any]) -> Location:
    photos = [
        Photo(
            id=str(p.get("_id") or new_object_id()),
            url=p.get("url", ""),
            public_id=p.get("publicId", ""),
            original_name=p.get("originalName") or "",
            uploaded_at=p.get("uploadedAt") or utcnow(),
        )
        for p in doc.get("photos") or []
    ]
    return Location(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        latitude=doc.get("latitude"),
        longitude=doc.get("longitude"),
        description=doc.get("description") or "",
        timestamp=doc.get("timestamp") or utcnow(),
        user_id=str(doc.get("userId", "")),
        photos=photos,
    )


class MongoLocationStore(LocationStore):
    source = db_service.SOURCE_MONGODB

    def __init__(self, collection: Any = None) -> None:
        self._collection = collection

    @property
    def collection(self) -> Any:
        if self._collection is None:
            self._collection = db_service.get_collection(db_service.LOCATIONS_COLLECTION)
        return self._collection

    async def list_for_user(self, user_id: str) -> List[Location]:
        cursor = self.collection.find({"userId": user_id}).sort("timestamp", DESCENDING)
        return [location_from_document(doc) async for doc in cursor]

    async def create(self, user_id: str, payload: LocationCreate) -> Location:
        location = _build_location(user_id, payload)
        doc = {
            "_id": ObjectId(location.id),
            "name": location.name,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "description": location.description,
            "timestamp": location.timestamp,
            "userId": user_id,
            "photos": [],
        }
        await self.collection.insert_one(doc)
        return location

    async def get_owned(self, location_id: str, user_id: str) -> Optional[Location]:
        oid = _to_object_id(location_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid, "userId": user_id})
        return location_from_document(doc) if doc else None

    async def add_photos(self, location_id: str, user_id: str, photos: List[Photo]) -> Optional[Location]:
        oid = _to_object_id(location_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid, "userId": user_id},
            {"$push": {"photos": {"$each": [_photo_to_document(p) for p in photos]}}},
            return_document=ReturnDocument.AFTER,
        )
        return location_from_document(doc) if doc else None

    async def remove_photo(self, location_id: str, user_id: str, public_id: str) -> Optional[Location]:
        oid = _to_object_id(location_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": oid, "userId": user_id},
            {"$pull": {"photos": {"publicId": public_id}}},
            return_document=ReturnDocument.AFTER,
        )
        return location_from_document(doc) if doc else None

    async def delete_owned(self, location_id: str, user_id: str) -> Optional[Location]:
        oid = _to_object_id(location_id)
        if oid is None:
            return None
        doc = await self.collection.find_one_and_delete({"_id": oid, "userId": user_id})
        return location_from_document(doc) if doc else None

    async def count(self) -> int:
        return await self.collection.count_documents({})


async def get_location_store() -> LocationStore:
    """
    FastAPI dependency: pick the store per request so a dropped connection
    falls back to memory without a restart.
    """
    if db_service.is_using_memory():
        return memory_store
    return MongoLocationStore()


async def count_locations() -> int:
    store = await get_location_store()
    try:
        return await store.count()
    except Exception as e:
        logger.warning("location_count_failed", source=store.source, error=str(e))
        return 0
