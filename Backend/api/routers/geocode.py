# Backend/api/routers/geocode.py
from __future__ import annotations

from typing import AsyncIterator

from fastapi import APIRouter, Depends, Query

from app.core.geo import apple_maps_url, coordinates_label, google_maps_url, is_valid_coordinates
from app.core.logging import get_logger
from app.core.responses import ApiError, success_envelope
from app.deps.auth import User, get_current_user
from services.geocoding_service import ReverseGeocodingService

logger = get_logger()

router = APIRouter(prefix="/geocode", tags=["geocode"])


async def get_geocoder() -> AsyncIterator[ReverseGeocodingService]:
    async with ReverseGeocodingService() as geocoder:
        yield geocoder


@router.get("/reverse")
async def reverse_geocode(
    latitude: float = Query(...),
    longitude: float = Query(...),
    user: User = Depends(get_current_user),
    geocoder: ReverseGeocodingService = Depends(get_geocoder),
):
    """
    Address for a point. `address` is empty when no provider could resolve
    it; `label` always holds something displayable.
    """
    if not is_valid_coordinates(latitude, longitude):
        raise ApiError(400, "Invalid coordinates")

    result = await geocoder.reverse(latitude, longitude)
    return success_envelope(
        data={
            "address": result.address if result else "",
            "provider": result.provider if result else None,
            "label": result.address if result else coordinates_label(latitude, longitude),
            "links": {
                "google": google_maps_url(latitude, longitude),
                "apple": apple_maps_url(latitude, longitude),
            },
        }
    )
