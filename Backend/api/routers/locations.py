# Backend/api/routers/locations.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import unquote

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile

from app.core.geo import format_distance, haversine_km, in_bbox, parse_bbox, parse_point
from app.core.logging import get_logger
from app.core.responses import ApiError, success_envelope
from app.deps.auth import User, get_current_user
from app.models.location import REQUIRED_FIELDS_MESSAGE, LocationCreate, Photo
from services.location_store_service import LocationStore, get_location_store, new_object_id
from services.photo_storage_service import (
    PendingPhoto,
    PhotoStorageService,
    PhotoValidationError,
    get_photo_storage,
    validate_photo_uploads,
)

logger = get_logger()

router = APIRouter(prefix="/locations", tags=["locations"])

NOT_FOUND_MESSAGE = "Location not found or access denied"


def _with_distance(item: Dict[str, Any], origin: Optional[tuple[float, float]]) -> Dict[str, Any]:
    if origin is None:
        return item
    km = haversine_km(origin[0], origin[1], item["latitude"], item["longitude"])
    item["distanceKm"] = round(km, 3)
    item["distanceLabel"] = format_distance(km)
    return item


@router.get("")
async def list_locations(
    bbox: Optional[str] = Query(
        None,
        description="Bounding box filter: west,south,east,north (WGS84 degrees)",
    ),
    near: Optional[str] = Query(
        None,
        description="Reference point lat,lng; adds distanceKm/distanceLabel to every entry",
    ),
    user: User = Depends(get_current_user),
    store: LocationStore = Depends(get_location_store),
):
    """
    The caller's locations, newest first.
    """
    parsed_bbox = parse_bbox(bbox)
    origin = parse_point(near)

    locations = await store.list_for_user(user.google_id)
    if parsed_bbox is not None:
        locations = [loc for loc in locations if in_bbox(loc.latitude, loc.longitude, parsed_bbox)]

    data = [_with_distance(loc.to_api(), origin) for loc in locations]
    return success_envelope(data=data, count=len(data), source=store.source)


@router.post("", status_code=201)
async def create_location(
    payload: Optional[LocationCreate] = Body(None),
    user: User = Depends(get_current_user),
    store: LocationStore = Depends(get_location_store),
):
    if payload is None:
        raise ApiError(400, REQUIRED_FIELDS_MESSAGE)

    location = await store.create(user.google_id, payload)
    logger.info("location_created", location_id=location.id, source=store.source)
    return success_envelope(
        data=location.to_api(),
        message="Location saved successfully",
        source=store.source,
    )


@router.delete("/{location_id}")
async def delete_location(
    location_id: str,
    user: User = Depends(get_current_user),
    store: LocationStore = Depends(get_location_store),
    photo_storage: PhotoStorageService = Depends(get_photo_storage),
):
    deleted = await store.delete_owned(location_id, user.google_id)
    if deleted is None:
        raise ApiError(404, NOT_FOUND_MESSAGE)

    for photo in deleted.photos:
        await photo_storage.delete_quietly(photo.public_id)

    logger.info(
        "location_deleted",
        location_id=location_id,
        photos_removed=len(deleted.photos),
        source=store.source,
    )
    return success_envelope(
        data=deleted.to_api(),
        message="Location deleted successfully",
        source=store.source,
    )


@router.post("/{location_id}/photos", status_code=201)
async def upload_photos(
    location_id: str,
    photos: Optional[List[UploadFile]] = File(None),
    user: User = Depends(get_current_user),
    store: LocationStore = Depends(get_location_store),
    photo_storage: PhotoStorageService = Depends(get_photo_storage),
):
    """
    Attach up to 5 images (multipart field `photos`) to one of the caller's locations.
    """
    if not photos:
        raise ApiError(400, "No photos provided")
    try:
        validate_photo_uploads(photos)
    except PhotoValidationError as e:
        raise ApiError(400, str(e))

    pending = [
        PendingPhoto(
            filename=upload.filename or "",
            content_type=upload.content_type,
            content=await upload.read(),
        )
        for upload in photos
    ]
    # UploadFile.size may be unset; recheck with the content in hand
    try:
        validate_photo_uploads(pending)
    except PhotoValidationError as e:
        raise ApiError(400, str(e))

    if await store.get_owned(location_id, user.google_id) is None:
        raise ApiError(404, NOT_FOUND_MESSAGE)

    try:
        stored = await photo_storage.upload_many(pending)
    except Exception as e:
        logger.error("photo_upload_failed", location_id=location_id, error=str(e))
        raise ApiError(500, "Photo upload failed", error=str(e))

    new_photos = [
        Photo(
            id=new_object_id(),
            url=image.url,
            public_id=image.public_id,
            original_name=image.original_name,
        )
        for image in stored
    ]
    updated = await store.add_photos(location_id, user.google_id, new_photos)
    if updated is None:
        # Location disappeared between the ownership check and the write.
        for image in stored:
            await photo_storage.delete_quietly(image.public_id)
        raise ApiError(404, NOT_FOUND_MESSAGE)

    logger.info("photos_attached", location_id=location_id, count=len(new_photos))
    return success_envelope(
        data={
            "locationId": location_id,
            "photos": [p.to_api() for p in new_photos],
        },
        message=f"{len(new_photos)} photo(s) uploaded successfully",
        source=store.source,
    )


@router.delete("/{location_id}/photos/{photo_id:path}")
async def delete_photo(
    location_id: str,
    photo_id: str,
    user: User = Depends(get_current_user),
    store: LocationStore = Depends(get_location_store),
    photo_storage: PhotoStorageService = Depends(get_photo_storage),
):
    """
    `photo_id` is the provider public id (URL-encoded; may contain '/').
    """
    public_id = unquote(photo_id)

    location = await store.get_owned(location_id, user.google_id)
    if location is None:
        raise ApiError(404, NOT_FOUND_MESSAGE)
    if location.find_photo(public_id) is None:
        raise ApiError(404, "Photo not found")

    await store.remove_photo(location_id, user.google_id, public_id)
    await photo_storage.delete_quietly(public_id)

    return success_envelope(
        data={"locationId": location_id, "deletedPhotoId": public_id},
        message="Photo deleted successfully",
        source=store.source,
    )
