"""
Coordinate-based resolution over a coarse spatial grid.

Strategy:
  1. Scale latitude/longitude by 100 and truncate by the cell size into an
     integer cell key. With the default cell size of 100 a cell is one degree.
  2. At build time, each known location goes into the bucket of its centre
     cell only.
  3. At query time, probe the centre cell plus the eight keys obtained by
     shifting the query half a cell in each direction, so locations just over
     a cell border are still candidates.
  4. Return the candidate with the smallest great-circle distance, provided it
     is strictly below the configured maximum distance.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

import numpy as np

from tweet_geo.location import Location
from tweet_geo.tweets import get_coordinates

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3958.7613
COORDINATE_SCALE = 100
DEFAULT_CELL_SIZE = 100

CellKey = tuple[int, int]


def haversine_miles(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Great-circle distance in miles from one point to each of `lats`/`lons`."""
    phi1 = np.radians(lat)
    phi2 = np.radians(lats)
    dphi = phi2 - phi1
    dlambda = np.radians(lons - lon)
    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_MILES * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


class GeocodeIndex:
    """Nearest known location to a point, within a maximum distance."""

    def __init__(self, max_distance: float, cell_size: int = DEFAULT_CELL_SIZE):
        self.max_distance = max_distance
        self.cell_size = cell_size
        self._cells: dict[CellKey, list[Location]] = {}
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def cell_key(self, latitude: float, longitude: float) -> CellKey:
        return (
            int(latitude * COORDINATE_SCALE / self.cell_size),
            int(longitude * COORDINATE_SCALE / self.cell_size),
        )

    def probe_keys(self, latitude: float, longitude: float) -> list[CellKey]:
        """Centre cell first, then the eight half-cell-shifted neighbours."""
        lat = latitude * COORDINATE_SCALE
        lon = longitude * COORDINATE_SCALE
        shift = self.cell_size / 2.0
        keys = []
        for dlat in (0.0, shift, -shift):
            for dlon in (0.0, shift, -shift):
                keys.append((int((lat + dlat) / self.cell_size), int((lon + dlon) / self.cell_size)))
        return keys

    def add(self, location: Location) -> bool:
        if not location.has_coordinates:
            return False
        if not (math.isfinite(location.latitude) and math.isfinite(location.longitude)):
            logger.warning("Not indexing %r: non-finite coordinates", location)
            return False
        key = self.cell_key(location.latitude, location.longitude)
        self._cells.setdefault(key, []).append(location)
        self._size += 1
        return True

    def add_all(self, locations: Iterable[Location]) -> int:
        return sum(1 for loc in locations if self.add(loc))

    def candidates(self, latitude: float, longitude: float) -> list[Location]:
        # dict keeps first-seen order while dropping repeats across probes
        seen: dict[int, Location] = {}
        for key in self.probe_keys(latitude, longitude):
            for location in self._cells.get(key, ()):
                seen.setdefault(id(location), location)
        return list(seen.values())

    def nearest(self, latitude: float, longitude: float) -> Optional[Location]:
        candidates = self.candidates(latitude, longitude)
        if not candidates:
            return None

        lats = np.array([c.latitude for c in candidates], dtype=np.float64)
        lons = np.array([c.longitude for c in candidates], dtype=np.float64)
        distances = haversine_miles(latitude, longitude, lats, lons)

        # argmin returns the first index on ties
        best = int(np.argmin(distances))
        best_distance = float(distances[best])
        if best_distance < self.max_distance:
            return candidates[best]

        logger.debug("Nearest location %r is %.1f miles away (max %.1f)",
                     candidates[best], best_distance, self.max_distance)
        return None

    def resolve(self, tweet: dict) -> Optional[Location]:
        point = get_coordinates(tweet)
        if point is None:
            return None
        return self.nearest(*point)
