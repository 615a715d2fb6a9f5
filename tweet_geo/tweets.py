"""
Accessors for the parts of a tweet the resolver looks at.
None of these raise: a missing or malformed field just means "no evidence".
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from tweet_geo.models import TweetPlace

logger = logging.getLogger(__name__)

PLACE = "place"
USER = "user"
USER_LOCATION = "location"
COORDINATES = "coordinates"


def get_place(tweet: dict) -> Optional[TweetPlace]:
    place = tweet.get(PLACE)
    if not place:
        return None
    if not isinstance(place, dict):
        logger.warning("Ignoring non-object place: %r", place)
        return None
    try:
        return TweetPlace.model_validate(place)
    except ValidationError as e:
        logger.warning("Ignoring malformed place %r: %s", place, e)
        return None


def has_place(tweet: dict) -> bool:
    """A place object is present. Not validated, so nothing is logged."""
    place = tweet.get(PLACE)
    return isinstance(place, dict) and bool(place)


def get_user_location(tweet: dict) -> Optional[str]:
    user = tweet.get(USER)
    if not isinstance(user, dict):
        return None
    location = user.get(USER_LOCATION)
    if isinstance(location, str) and location:
        return location
    return None


def _number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def get_coordinates(tweet: dict) -> Optional[tuple[float, float]]:
    """(latitude, longitude) from GeoJSON-ordered `coordinates.coordinates`."""
    coordinates = tweet.get(COORDINATES)
    if not isinstance(coordinates, dict):
        return None
    pair = coordinates.get(COORDINATES)
    if not isinstance(pair, (list, tuple)) or len(pair) < 2:
        return None

    longitude = _number(pair[0])
    latitude = _number(pair[1])
    if latitude is None or longitude is None:
        return None
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        logger.debug("Ignoring out-of-range coordinates %r", pair)
        return None
    return latitude, longitude
