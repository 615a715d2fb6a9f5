"""Counters describing what evidence a batch of tweets carried and how it resolved."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from tweet_geo.location import Location
from tweet_geo.tweets import get_coordinates, get_user_location, has_place


@dataclass
class ResolutionStats:
    total: int = 0
    resolved: int = 0
    skipped: int = 0
    has_place: int = 0
    has_coordinates: int = 0
    has_user_location: int = 0
    by_granularity: Counter = field(default_factory=Counter)
    by_method: Counter = field(default_factory=Counter)

    def skip(self) -> None:
        """A line that could not be parsed; not included in the total."""
        self.skipped += 1

    def observe(self, tweet: dict, location: Optional[Location]) -> None:
        self.total += 1
        if has_place(tweet):
            self.has_place += 1
        if get_coordinates(tweet) is not None:
            self.has_coordinates += 1
        if get_user_location(tweet) is not None:
            self.has_user_location += 1

        if location is None or location.is_none:
            return
        self.resolved += 1
        self.by_granularity[location.granularity] += 1
        method = location.resolution_method.value if location.resolution_method else "unknown"
        self.by_method[method] += 1

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "resolved": self.resolved,
            "skipped": self.skipped,
            "has_place": self.has_place,
            "has_coordinates": self.has_coordinates,
            "has_user_location": self.has_user_location,
            "by_granularity": dict(self.by_granularity),
            "by_method": dict(self.by_method),
        }

    def log_summary(self, logger: logging.Logger) -> None:
        logger.info("Total: %d", self.total)
        logger.info("Resolved: %d", self.resolved)
        logger.info("Skipped (not included in total): %d", self.skipped)
        logger.info("Has place: %d", self.has_place)
        logger.info("Has coordinates: %d", self.has_coordinates)
        logger.info("Has user location: %d", self.has_user_location)
        for granularity in ("city", "county", "state", "country"):
            logger.info("Num %s: %d", granularity, self.by_granularity.get(granularity, 0))
        for method, count in sorted(self.by_method.items()):
            logger.info("%s\t%d", method, count)
