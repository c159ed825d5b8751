"""
Pydantic models for notebook locations and their photos.

Wire format is camelCase (userId, publicId, originalName, uploadedAt); the
Python attributes stay snake_case.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.core.geo import validate_coordinates

REQUIRED_FIELDS_MESSAGE = "Name, latitude and longitude fields are required"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Photo(_CamelModel):
    """A photo attached to a location, hosted at the image provider."""
    id: str
    url: str
    public_id: str
    original_name: str = ""
    uploaded_at: datetime = Field(default_factory=utcnow)


class Location(_CamelModel):
    """A geotagged notebook entry owned by exactly one user."""
    id: str
    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    description: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    user_id: str
    photos: List[Photo] = Field(default_factory=list)

    def find_photo(self, public_id: str) -> Optional[Photo]:
        for photo in self.photos:
            if photo.public_id == public_id:
                return photo
        return None


class LocationCreate(BaseModel):
    """Request model for saving a new location."""
    name: Optional[str] = Field(None, max_length=200)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = Field("", max_length=5000)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def _check_required_and_range(self) -> "LocationCreate":
        if not self.name or self.latitude is None or self.longitude is None:
            raise ValueError(REQUIRED_FIELDS_MESSAGE)
        validate_coordinates(self.latitude, self.longitude)
        if self.description is None:
            self.description = ""
        return self
