"""
Shared geographic helpers.

Used by the locations API (range checks, bbox filter, distance annotation),
the reverse-geocoding endpoint and the offline notebook CLI.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from fastapi import HTTPException


EARTH_RADIUS_KM = 6371.0

LAT_MIN, LAT_MAX = -90.0, 90.0
LNG_MIN, LNG_MAX = -180.0, 180.0


def is_valid_coordinates(lat: float, lng: float) -> bool:
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        return False
    if math.isnan(lat_f) or math.isnan(lng_f):
        return False
    return LAT_MIN <= lat_f <= LAT_MAX and LNG_MIN <= lng_f <= LNG_MAX


def validate_coordinates(lat: float, lng: float) -> Tuple[float, float]:
    """
    Return (lat, lng) as floats or raise ValueError("Invalid coordinates").
    """
    if not is_valid_coordinates(lat, lng):
        raise ValueError("Invalid coordinates")
    return float(lat), float(lng)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two WGS84 points in kilometres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def format_distance(distance_km: float) -> str:
    if distance_km < 1:
        return f"{round(distance_km * 1000)}m"
    return f"{distance_km:.1f}km"


def google_maps_url(lat: float, lng: float) -> str:
    return f"https://maps.google.com/?q={lat},{lng}"


def apple_maps_url(lat: float, lng: float) -> str:
    return f"https://maps.apple.com/?q={lat},{lng}"


def coordinates_label(lat: float, lng: float) -> str:
    # Shown when no provider could resolve an address
    return f"{lat:.6f}, {lng:.6f}"


def parse_point(point_str: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Parse a 'lat,lng' query parameter.

    Raises:
        HTTPException: If the format is invalid or values are out of range
    """
    if not point_str or not point_str.strip():
        return None

    parts = [p.strip() for p in point_str.split(",")]
    if len(parts) != 2:
        raise HTTPException(
            status_code=400,
            detail="point must have exactly 2 comma-separated values: lat,lng",
        )
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail=f"point values must be numeric: {str(e)}",
        )
    if not is_valid_coordinates(lat, lng):
        raise HTTPException(status_code=400, detail="Invalid coordinates")
    return (lat, lng)


def parse_bbox(bbox_str: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    """
    Parse bbox query parameter from format 'west,south,east,north' to (lat_min, lat_max, lng_min, lng_max).

    Args:
        bbox_str: Comma-separated string "west,south,east,north" in WGS84 degrees

    Returns:
        Tuple of (lat_min, lat_max, lng_min, lng_max) or None if bbox_str is None/empty

    Raises:
        HTTPException: If bbox format is invalid or values are out of range
    """
    if not bbox_str or not bbox_str.strip():
        return None

    parts = [p.strip() for p in bbox_str.split(",")]
    if len(parts) != 4:
        raise HTTPException(
            status_code=400,
            detail="bbox must have exactly 4 comma-separated values: west,south,east,north",
        )
    try:
        west, south, east, north = [float(p) for p in parts]
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail=f"bbox values must be numeric: {str(e)}",
        )

    if not (LNG_MIN <= west <= LNG_MAX) or not (LNG_MIN <= east <= LNG_MAX):
        raise HTTPException(
            status_code=400,
            detail="bbox longitude values must be between -180 and 180",
        )
    if not (LAT_MIN <= south <= LAT_MAX) or not (LAT_MIN <= north <= LAT_MAX):
        raise HTTPException(
            status_code=400,
            detail="bbox latitude values must be between -90 and 90",
        )
    if west >= east:
        raise HTTPException(status_code=400, detail="bbox west must be less than east")
    if south >= north:
        raise HTTPException(status_code=400, detail="bbox south must be less than north")

    return (south, north, west, east)


def in_bbox(lat: float, lng: float, bbox: Tuple[float, float, float, float]) -> bool:
    lat_min, lat_max, lng_min, lng_max = bbox
    return lat_min <= lat <= lat_max and lng_min <= lng <= lng_max
