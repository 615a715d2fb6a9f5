"""
Location: a node in the country/state/county/city hierarchy.

Identity is administrative only. Two locations are the same place when their
four name fields match case-insensitively (an empty string counts as absent)
and they agree on whether they are the world root. Ids, coordinates and
provenance are ignored, so a location synthesized from a tweet's place can be
matched against the reference data by name alone.

Locations loaded from the reference data are "known" and carry the dataset id
and centre coordinates. Everything else (unknown places, backed-off parents)
is created at resolution time and, once registered, gets an id from a high
range that is only stable for the life of the process.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from tweet_geo.models import LocationPayload, LocationRecord, ResolutionMethod

NONE_ID = -1
_NAME_FIELDS = ("country", "state", "county", "city")


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def _fold(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


@dataclass(eq=False)
class Location:
    country: Optional[str] = None
    state: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    id: int = NONE_ID
    parent_id: int = NONE_ID
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_none: bool = False
    known: bool = False
    # Provenance of a location built from a tweet place
    url: Optional[str] = None
    twitter_id: Optional[str] = None
    # Per-query stamp; hierarchy nodes never carry one
    resolution_method: Optional[ResolutionMethod] = None

    def __post_init__(self) -> None:
        self.country = _blank_to_none(self.country)
        self.state = _blank_to_none(self.state)
        self.county = _blank_to_none(self.county)
        self.city = _blank_to_none(self.city)

    # ── Identity ───────────────────────────────────────────────────────

    def identity(self) -> tuple:
        return (
            _fold(self.country),
            _fold(self.state),
            _fold(self.county),
            _fold(self.city),
            self.is_none,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self.identity() == other.identity()

    def __hash__(self) -> int:
        # Order-independent sum of the folded names
        total = sum(hash(v) for v in self.identity()[:4] if v is not None)
        if self.is_none:
            total += 1
        return hash(total)

    # ── Construction ───────────────────────────────────────────────────

    @classmethod
    def none(cls) -> "Location":
        """The root of every hierarchy chain: the whole world."""
        return cls(id=NONE_ID, parent_id=NONE_ID, is_none=True, known=True)

    @classmethod
    def from_record(cls, record: LocationRecord) -> "Location":
        return cls(
            country=record.country,
            state=record.state,
            county=record.county,
            city=record.city,
            id=record.id,
            parent_id=record.parent_id,
            latitude=record.latitude,
            longitude=record.longitude,
            known=True,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Location":
        """
        Rebuild a location from a serialized payload.
        The result is not trusted as known; pass it through
        LocationResolver.lookup_location to get the canonical node.
        """
        payload = LocationPayload.model_validate(data)
        return cls(
            country=payload.country,
            state=payload.state,
            county=payload.county,
            city=payload.city,
            id=payload.id,
            latitude=payload.latitude,
            longitude=payload.longitude,
            url=payload.url,
            twitter_id=payload.twitter_id,
        )

    def with_method(self, method: Optional[ResolutionMethod]) -> "Location":
        """Copy of this location stamped with the strategy that produced it."""
        return replace(self, resolution_method=method)

    def backoff(self) -> Optional["Location"]:
        """
        The enclosing location obtained by dropping the most specific name.
        Returns None only for the root.
        """
        if self.is_none:
            return None
        if self.city is not None:
            return Location(self.country, self.state, self.county, None)
        if self.county is not None:
            return Location(self.country, self.state, None, None)
        if self.state is not None:
            return Location(self.country, None, None, None)
        return Location.none()

    # ── Accessors ──────────────────────────────────────────────────────

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def granularity(self) -> str:
        if self.city is not None:
            return "city"
        if self.county is not None:
            return "county"
        if self.state is not None:
            return "state"
        if self.country is not None:
            return "country"
        return "none"

    def is_country_or_state_or_county(self) -> bool:
        return self.city is None

    def display_string(self) -> str:
        """'Baltimore (Maryland, United States)', 'Maryland (United States)', 'Canada'."""
        names = [n for n in (self.city, self.county, self.state, self.country) if n is not None]
        if not names:
            return "None" if self.is_none else ""
        if len(names) == 1:
            return names[0]
        return f"{names[0]} ({', '.join(names[1:])})"

    def to_dict(self) -> dict:
        return LocationPayload(
            country=self.country,
            state=self.state,
            county=self.county,
            city=self.city,
            id=self.id,
            latitude=self.latitude,
            longitude=self.longitude,
            url=self.url or None,
            twitter_id=self.twitter_id or None,
            resolution_method=self.resolution_method,
        ).to_json_dict()

    def __repr__(self) -> str:
        parts = [f'{name}="{getattr(self, name)}"' for name in reversed(_NAME_FIELDS) if getattr(self, name)]
        if self.is_none:
            parts.append("none")
        return f"Location({', '.join(parts)}; known={self.known}, id={self.id})"
