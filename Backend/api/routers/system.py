# Backend/api/routers/system.py
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from services import db_service
from services.location_store_service import count_locations
from services.photo_storage_service import configuration_report

router = APIRouter(tags=["system"])


@router.get("/health")
async def health():
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {
            "mongodb": {
                "status": db_service.connection_status(),
                "uri": db_service.masked_uri(),
            },
            "storage": db_service.storage_source(),
            "locations_count": await count_locations(),
        },
    }


@router.get("/cloudinary-test")
async def cloudinary_test():
    """Which Cloudinary variables are set (values are never returned)."""
    return {"success": True, **configuration_report()}
