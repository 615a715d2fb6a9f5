"""
Pydantic models for the data that crosses the library boundary:
reference-data records, tweet fragments, and serialized locations.
These are pure data objects; the hierarchy itself lives in Location/HierarchyStore.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ── Enums ──────────────────────────────────────────────────────────────

class ResolutionMethod(str, Enum):
    PLACE = "place"
    COORDINATES = "coordinates"
    USER_LOCATION = "user_location"


class PlaceType(str, Enum):
    CITY = "city"
    ADMIN = "admin"
    COUNTRY = "country"
    NEIGHBORHOOD = "neighborhood"
    POI = "poi"


# ── Reference data ─────────────────────────────────────────────────────

class LocationRecord(BaseModel):
    """One line of the reference location dataset."""
    id: int
    parent_id: int = -1
    country: Optional[str] = None
    state: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    aliases: list[str] = Field(default_factory=list)

    # "NaN" and "inf" parse as floats but cannot be placed on the grid
    model_config = {"extra": "ignore", "allow_inf_nan": False}

    @field_validator("country", "state", "county", "city", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        """The dataset writes absent levels as empty strings."""
        if v is None:
            return None
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def blank_coordinate(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("aliases", mode="before")
    @classmethod
    def null_aliases(cls, v):
        return [] if v is None else v


# ── Tweet fragments ────────────────────────────────────────────────────

class TweetPlace(BaseModel):
    """The `place` object attached to a tweet."""
    country: Optional[str] = None
    name: Optional[str] = None
    full_name: Optional[str] = None
    place_type: Optional[str] = None
    url: Optional[str] = None
    id: Optional[str] = None

    model_config = {"extra": "allow"}

    @field_validator("id", mode="before")
    @classmethod
    def numeric_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


# ── Serialized output ─────────────────────────────────────────────────

class LocationPayload(BaseModel):
    """The `location` object written back onto a resolved tweet."""
    country: Optional[str] = None
    state: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    id: int = -1
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    # Only emitted when set
    url: Optional[str] = None
    twitter_id: Optional[str] = None
    resolution_method: Optional[ResolutionMethod] = None

    model_config = {"extra": "ignore"}

    def to_json_dict(self) -> dict:
        optional = {"url", "twitter_id", "resolution_method"}
        data = self.model_dump(mode="json")
        return {k: v for k, v in data.items() if k not in optional or v is not None}
