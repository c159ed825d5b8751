# -*- coding: utf-8 -*-
"""
OfflineNotebook: local flat-file notebook for use without the API.
- Same document shape as the server (photos inline as data: URLs)
- Whole file is rewritten on every change
- Addresses can be filled in later through ReverseGeocodingService
"""

from __future__ import annotations

import base64
import json
import mimetypes
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.geo import coordinates_label, format_distance, haversine_km, validate_coordinates
from app.core.logging import get_logger

logger = get_logger()

DEFAULT_NOTEBOOK_FILE = "location_notebook_data.json"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class NotebookPhoto(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    url: str
    original_name: str = Field("", alias="originalName")
    uploaded_at: datetime = Field(default_factory=_now, alias="uploadedAt")
    public_id: str = Field(default_factory=_new_id, alias="publicId")


class NotebookEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    description: str = ""
    timestamp: datetime = Field(default_factory=_now)
    photos: List[NotebookPhoto] = Field(default_factory=list)
    address: Optional[str] = None


class OfflineNotebook:
    def __init__(self, path: Path | str = DEFAULT_NOTEBOOK_FILE):
        self.path = Path(path)
        self._entries: Optional[List[NotebookEntry]] = None

    # ---- persistence -----------------------------------------------------

    def load(self) -> List[NotebookEntry]:
        if self._entries is not None:
            return self._entries
        if not self.path.exists():
            self._entries = []
            return self._entries
        raw = self.path.read_text(encoding="utf-8")
        self._entries = self._parse(raw) if raw.strip() else []
        return self._entries

    @staticmethod
    def _parse(raw: str) -> List[NotebookEntry]:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError("notebook data must be a JSON list")
        return [NotebookEntry.model_validate(item) for item in data]

    def _serialize(self, entries: List[NotebookEntry]) -> str:
        return json.dumps(
            [e.model_dump(by_alias=True, mode="json") for e in entries],
            indent=2,
            ensure_ascii=False,
        )

    def save(self) -> None:
        entries = self.load()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(self._serialize(entries), encoding="utf-8")
        tmp.replace(self.path)

    # ---- queries ---------------------------------------------------------

    def locations(self) -> List[NotebookEntry]:
        """Entries, newest first."""
        return sorted(self.load(), key=lambda e: e.timestamp, reverse=True)

    def get(self, location_id: str) -> Optional[NotebookEntry]:
        for entry in self.load():
            if entry.id == location_id:
                return entry
        return None

    def distances_from(self, lat: float, lng: float) -> List[Tuple[NotebookEntry, float, str]]:
        """(entry, km, label) sorted nearest first."""
        rows = []
        for entry in self.load():
            km = haversine_km(lat, lng, entry.latitude, entry.longitude)
            rows.append((entry, km, format_distance(km)))
        rows.sort(key=lambda r: r[1])
        return rows

    # ---- mutations -------------------------------------------------------

    def add_location(
        self,
        name: str,
        lat: float,
        lng: float,
        description: str = "",
        address: Optional[str] = None,
    ) -> NotebookEntry:
        if not name or not name.strip():
            raise ValueError("Name, latitude and longitude fields are required")
        lat, lng = validate_coordinates(lat, lng)
        entry = NotebookEntry(
            name=name.strip(),
            latitude=lat,
            longitude=lng,
            description=(description or "").strip(),
            address=address,
        )
        self.load().append(entry)
        self.save()
        logger.info("notebook_location_added", location_id=entry.id)
        return entry

    def update_location(self, location_id: str, **changes: Any) -> Optional[NotebookEntry]:
        entry = self.get(location_id)
        if entry is None:
            return None
        allowed = {"name", "latitude", "longitude", "description", "address"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        merged = entry.model_dump()
        merged.update({k: v for k, v in changes.items() if v is not None})
        validate_coordinates(merged["latitude"], merged["longitude"])
        updated = NotebookEntry.model_validate(merged)
        entries = self.load()
        entries[entries.index(entry)] = updated
        self.save()
        return updated

    def delete_location(self, location_id: str) -> bool:
        entry = self.get(location_id)
        if entry is None:
            return False
        self.load().remove(entry)
        self.save()
        logger.info("notebook_location_deleted", location_id=location_id)
        return True

    def add_photo(self, location_id: str, image_path: Path | str) -> NotebookPhoto:
        entry = self.get(location_id)
        if entry is None:
            raise LookupError(f"Location not found: {location_id}")
        image_path = Path(image_path)
        mime, _ = mimetypes.guess_type(image_path.name)
        if not mime or not mime.startswith("image/"):
            raise ValueError("Only image files are allowed")
        encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
        stamp = int(_now().timestamp() * 1000)
        photo = NotebookPhoto(
            url=f"data:{mime};base64,{encoded}",
            original_name=f"photo_{stamp}{image_path.suffix or '.jpg'}",
        )
        entry.photos.append(photo)
        self.save()
        return photo

    def delete_photo(self, location_id: str, photo_id: str) -> bool:
        entry = self.get(location_id)
        if entry is None:
            return False
        remaining = [p for p in entry.photos if p.id != photo_id]
        if len(remaining) == len(entry.photos):
            return False
        entry.photos = remaining
        self.save()
        return True

    def export_data(self) -> str:
        return self._serialize(self.load())

    def import_data(self, raw: str) -> bool:
        """
        Replace the notebook with `raw`. Malformed data leaves the file untouched.
        """
        try:
            entries = self._parse(raw)
        except (ValueError, ValidationError) as e:
            logger.warning("notebook_import_rejected", error=str(e))
            return False
        self._entries = entries
        self.save()
        logger.info("notebook_imported", count=len(entries))
        return True

    def clear(self) -> None:
        self._entries = []
        self.save()

    async def fill_missing_addresses(self, geocoder: Any) -> int:
        """
        Resolve addresses for entries without one. Entries the providers
        cannot resolve get the coordinates label. Returns the number filled.
        """
        filled = 0
        for entry in self.load():
            if entry.address:
                continue
            result = await geocoder.reverse(entry.latitude, entry.longitude)
            entry.address = result.address if result else coordinates_label(entry.latitude, entry.longitude)
            filled += 1
        if filled:
            self.save()
        return filled
