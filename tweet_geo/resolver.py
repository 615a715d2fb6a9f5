"""
Location resolution engine.

Given a tweet, strategies are tried in priority order and the first one that
produces a location wins:
  1. place        the tweet's structured place annotation
  2. coordinates  nearest known location to the tweet's point
  3. user string  the free-text location on the user's profile
If the place named something unknown and unknown places are not accepted, the
nearest known ancestor of that place can be kept as a last resort (4).

The returned Location is a copy stamped with the method that produced it. The
engine owns the hierarchy store; accepting unknown places registers them there,
so a resolver must not be shared by concurrent callers without external locking.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from tweet_geo.config import ResolverConfig
from tweet_geo.geocode import GeocodeIndex
from tweet_geo.hierarchy import HierarchyStore
from tweet_geo.location import Location
from tweet_geo.models import PlaceType, ResolutionMethod, TweetPlace
from tweet_geo.reference import (
    ReferenceData,
    load_reference_data,
    normalize_name,
    strip_punctuation,
)
from tweet_geo.tweets import get_place, get_user_location

logger = logging.getLogger(__name__)

UNITED_STATES = "united states"

# "Baltimore, MD" -> "MD"
_TRAILING_TOKEN_RE = re.compile(r".+,\s*(\w+)")


class LocationResolver:
    def __init__(self, config: ResolverConfig, reference: ReferenceData):
        self.config = config
        self.names = reference.names
        self.place_name_mapping = reference.place_name_mapping
        self.states = reference.states
        self.countries = reference.countries

        self.store = HierarchyStore()
        for location in reference.locations:
            self.store.add_known(location)
        orphans = self.store.link_declared_parents()
        if orphans:
            logger.warning("%d locations have no parent in the hierarchy", orphans)

        self.geocoder: Optional[GeocodeIndex] = None
        if config.use_geocodes:
            self.geocoder = GeocodeIndex(config.geocode_max_distance)
            indexed = self.geocoder.add_all(self.store.known_locations())
            logger.info("Indexed %d locations for coordinate lookup", indexed)

        logger.info("Resolver ready with %d locations; strategies: %s",
                    len(self.store), ", ".join(config.enabled_strategies()) or "none")

    @classmethod
    def from_config(cls, config: ResolverConfig | None = None) -> "LocationResolver":
        config = config or ResolverConfig()
        return cls(config, load_reference_data(config))

    # ── Pipeline ───────────────────────────────────────────────────────

    def resolve(self, tweet: dict) -> Optional[Location]:
        """Resolve a location for one tweet, or None when nothing matches."""
        fallback: Optional[Location] = None

        if self.config.use_place:
            location = self.resolve_place(tweet)
            if location is not None and not location.known:
                location, fallback = self._handle_unknown_place(location)
            if location is not None:
                return location.with_method(ResolutionMethod.PLACE)

        if self.config.use_geocodes and self.geocoder is not None:
            location = self.geocoder.resolve(tweet)
            if location is not None:
                return location.with_method(ResolutionMethod.COORDINATES)

        if self.config.use_user_string:
            location = self.resolve_user_location(tweet)
            if location is not None:
                return location.with_method(ResolutionMethod.USER_LOCATION)

        if fallback is not None:
            logger.debug("Falling back to known parent %r", fallback)
            return fallback.with_method(ResolutionMethod.PLACE)
        return None

    def _handle_unknown_place(self, location: Location) -> tuple[Optional[Location], Optional[Location]]:
        """Apply the unknown-place policy. Returns (accepted location, fallback)."""
        if self.config.use_unknown_places:
            return self.store.lookup_or_register(location), None

        if self.config.use_known_parent_for_unknown_places:
            return None, self.known_ancestor(location)

        return None, None

    def known_ancestor(self, location: Location) -> Optional[Location]:
        """
        Nearest known ancestor below the root, found by repeated backoff.
        The root is itself known but is never returned, so an unknown country
        has no fallback.
        """
        parent = self.store.create_parent(location, register=False)
        while parent is not None and not parent.known:
            parent = self.store.create_parent(parent, register=False)
        if parent is None or parent.is_none:
            return None
        return parent

    # ── Place strategy ─────────────────────────────────────────────────

    def resolve_place(self, tweet: dict) -> Optional[Location]:
        place = get_place(tweet)
        if place is None:
            return None

        if not place.country:
            logger.warning("Found place with no country: %r", place.model_dump())
            return None
        country = self.place_name_mapping.get(place.country.lower(), place.country)

        place_type = (place.place_type or "").lower()
        if place_type == PlaceType.CITY:
            state = None
            if country.lower() == UNITED_STATES:
                if not place.full_name:
                    logger.warning("Found place with no full_name: %r", place.model_dump())
                    return None
                state = self._state_from_full_name(place.full_name)
            return self._location_for_place(place, country, state=state, city=place.name)

        if place_type == PlaceType.ADMIN:
            return self._location_for_place(place, country, state=place.name)

        if place_type == PlaceType.COUNTRY:
            return self._location_for_place(place, country)

        if place_type in (PlaceType.NEIGHBORHOOD, PlaceType.POI):
            if not place.full_name:
                logger.warning("Found place with no full_name: %r", place.model_dump())
                return None
            segments = place.full_name.split(",")
            city = segments[1].strip() if len(segments) > 1 else None
            return self._location_for_place(place, country, city=city)

        logger.warning("Unknown place type: %r", place.place_type)
        return None

    def _state_from_full_name(self, full_name: str) -> Optional[str]:
        match = _TRAILING_TOKEN_RE.fullmatch(full_name)
        if not match:
            return None
        return self.states.resolve(match.group(1))

    def _location_for_place(
        self,
        place: TweetPlace,
        country: str,
        state: Optional[str] = None,
        county: Optional[str] = None,
        city: Optional[str] = None,
    ) -> Location:
        location = Location(country, state, county, city)
        stored = self.store.find(location)
        if stored is not None:
            return stored

        location.url = place.url
        location.twitter_id = place.id
        return location

    # ── User profile strategy ──────────────────────────────────────────

    def resolve_user_location(self, tweet: dict) -> Optional[Location]:
        text = get_user_location(tweet)
        if text is None:
            return None

        cleaned = strip_punctuation(text)
        if not cleaned:
            return None
        location = self._lookup_name(cleaned)
        if location is not None:
            return location

        # "somewhere, md" -> maryland
        match = _TRAILING_TOKEN_RE.fullmatch(strip_punctuation(text, keep_commas=True))
        if match:
            token = match.group(1)
            name = self.states.resolve(token) or self.countries.resolve(token)
            if name is not None:
                location = self._lookup_name(normalize_name(name))
                if location is not None:
                    return location

        if self.config.user_string_ngrams:
            return self._scan_ngrams(cleaned)
        return None

    def _scan_ngrams(self, cleaned: str) -> Optional[Location]:
        """Longest known alias appearing as whole words; leftmost wins on ties."""
        tokens = cleaned.split(" ")
        longest = min(len(tokens), self.names.max_tokens)
        for size in range(longest, 0, -1):
            for start in range(len(tokens) - size + 1):
                location = self._lookup_name(" ".join(tokens[start:start + size]))
                if location is not None:
                    return location
        return None

    def _lookup_name(self, name: str) -> Optional[Location]:
        location = self.names.get(name)
        if location is None:
            return None
        return self.store.find(location) or location

    # ── Hierarchy access ───────────────────────────────────────────────

    def get_location_for_id(self, location_id: int) -> Location:
        return self.store.get_by_id(location_id)

    def get_parent(self, location: Location) -> Optional[Location]:
        return self.store.get_parent(location)

    def get_children(self, location: Location) -> Optional[list[Location]]:
        return self.store.get_children(location)

    def contains(self, ancestor: Location, location: Location) -> bool:
        return self.store.contains(ancestor, location)

    def lookup_location(self, location: Location) -> Location:
        """
        The canonical version of a location that may have been created elsewhere
        (e.g. deserialized from a previous run), registering it when unseen.
        """
        return self.store.lookup_or_register(location)
