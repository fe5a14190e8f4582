"""Data models for locations and position fixes."""

import uuid
from enum import Enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthorizationState(str, Enum):
    """Location authorization as reported by the permission provider."""
    UNDETERMINED = "undetermined"
    AUTHORIZED_WHILE_IN_USE = "authorizedWhileInUse"
    AUTHORIZED_ALWAYS = "authorizedAlways"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def is_authorized(self) -> bool:
        return self in (AuthorizationState.AUTHORIZED_WHILE_IN_USE, AuthorizationState.AUTHORIZED_ALWAYS)

    @property
    def is_refused(self) -> bool:
        return self in (AuthorizationState.DENIED, AuthorizationState.RESTRICTED)


def coordinates_valid(latitude: float, longitude: float) -> bool:
    """Check that a coordinate pair lies on the globe."""
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


class Position(BaseModel):
    """One position fix reported by a position source."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # metres
    timestamp: datetime = Field(default_factory=_utcnow)


class Placemark(BaseModel):
    """Reverse geocoding candidate."""
    thoroughfare: Optional[str] = None
    locality: Optional[str] = None
    administrative_area: Optional[str] = None

    @property
    def street(self) -> Optional[str]:
        return self.thoroughfare or None

    @property
    def place(self) -> Optional[str]:
        parts = [p for p in (self.locality, self.administrative_area) if p]
        return ", ".join(parts) if parts else None


class LocationEntry(BaseModel):
    """Coordinates captured at a point in time, with an optional address label.

    street/place are only set after successful reverse geocoding.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    timestamp: datetime = Field(default_factory=_utcnow)
    latitude: float
    longitude: float
    street: Optional[str] = None
    place: Optional[str] = None

    @field_validator("timestamp", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        # Naive timestamps are treated as UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def has_valid_coordinates(self) -> bool:
        return coordinates_valid(self.latitude, self.longitude)

    @property
    def label(self) -> str:
        """Best human-readable label for this entry."""
        if self.street and self.place:
            return f"{self.street}, {self.place}"
        return self.street or self.place or f"{self.latitude:.5f}, {self.longitude:.5f}"


class SavedLocation(BaseModel):
    """A location the user chose to keep.

    The record exclusively owns its LocationEntry (referenced by id);
    deleting the record deletes the entry.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    description: str = ""
    location_entry_id: uuid.UUID
    created_at: datetime = Field(default_factory=_utcnow)
    is_favorite: bool = False

    @field_validator("created_at", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def display_name(self, entry: Optional[LocationEntry] = None) -> str:
        """Description if set, otherwise the street, otherwise a generic label."""
        if self.description:
            return self.description
        if entry is not None and entry.street:
            return entry.street
        return "Location"
