"""
In-memory location hierarchy.

The store maps ids to locations and back, and keeps parent/child adjacency.
Known locations arrive with their parent ids already resolved in the data, so
building the hierarchy at load time is a single linking pass. Locations seen
for the first time at resolution time can be registered later; they get ids
from a counter that starts well above any dataset id, and their parent chain
is synthesized by backing off one administrative level at a time.

The store only ever grows. It is not safe for concurrent registration without
external synchronization.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from tweet_geo.location import NONE_ID, Location

logger = logging.getLogger(__name__)

NEW_LOCATION_START_ID = 1_000_000


class LocationNotFoundError(KeyError):
    """No location is registered under the requested id."""


class HierarchyStore:
    def __init__(self, start_id: int = NEW_LOCATION_START_ID):
        self._next_id = start_id
        self._id_to_location: dict[int, Location] = {}
        self._location_to_id: dict[Location, int] = {}
        self._parent: dict[Location, Location] = {}
        self._children: dict[Location, list[Location]] = {}

        self.root = Location.none()
        self._put(self.root, NONE_ID)

    # ── Loading ────────────────────────────────────────────────────────

    def add_known(self, location: Location) -> None:
        """Register a location loaded from the reference data under its own id."""
        if location.id in self._id_to_location:
            logger.warning("Duplicate location id %d: keeping %r, dropping %r",
                           location.id, self._id_to_location[location.id], location)
            return
        if location in self._location_to_id:
            logger.warning("Duplicate location %r (id %d already registered as %d)",
                           location, location.id, self._location_to_id[location])
            return
        self._put(location, location.id)

    def link_declared_parents(self) -> int:
        """
        Link every registered location to the parent named by its parent_id.
        Returns the number of locations left without a parent (other than the root),
        including records whose declared parents form a cycle.
        """
        orphans = 0
        for location in list(self._id_to_location.values()):
            if location.is_none or location in self._parent:
                continue
            parent = self._id_to_location.get(location.parent_id)
            if parent is None or parent is location:
                orphans += 1
                logger.warning("Location %r has unknown parent id %d", location, location.parent_id)
                continue
            self._link(location, parent)
        return orphans + self._break_cycles()

    def _break_cycles(self) -> int:
        """Unlink every location whose declared parent chain loops back on itself."""
        broken = 0
        for location in list(self._parent):
            path: list[Location] = []
            seen: set[int] = set()
            current = location
            while current in self._parent and id(current) not in seen:
                seen.add(id(current))
                path.append(current)
                current = self._parent[current]
            if id(current) not in seen:
                continue
            start = next(i for i, loc in enumerate(path) if loc is current)
            for member in path[start:]:
                logger.warning("Location %r is on a parent cycle; leaving it unlinked", member)
                self._unlink(member)
                broken += 1
        return broken

    # ── Queries ────────────────────────────────────────────────────────

    def get_by_id(self, location_id: int) -> Location:
        try:
            return self._id_to_location[location_id]
        except KeyError:
            raise LocationNotFoundError(f"Unknown location for id: {location_id}") from None

    def find(self, location: Location) -> Optional[Location]:
        """The stored location equal to `location`, if any."""
        location_id = self._location_to_id.get(location)
        if location_id is None:
            return None
        return self._id_to_location[location_id]

    def get_parent(self, location: Location) -> Optional[Location]:
        return self._parent.get(location)

    def get_children(self, location: Location) -> Optional[list[Location]]:
        return self._children.get(location)

    def ancestors(self, location: Location) -> Iterator[Location]:
        """Walk stored parents up to (and including) the root."""
        seen = {id(location)}
        current = self.get_parent(location)
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            current = self.get_parent(current)

    def contains(self, ancestor: Location, location: Location) -> bool:
        """True when `location` is `ancestor` or lies somewhere beneath it."""
        if ancestor == location:
            return True
        return any(ancestor == parent for parent in self.ancestors(location))

    def known_locations(self) -> list[Location]:
        return [loc for loc in self._id_to_location.values() if loc.known and not loc.is_none]

    def __len__(self) -> int:
        return len(self._id_to_location)

    def __contains__(self, location: object) -> bool:
        return location in self._location_to_id

    # ── Synthesis and registration ─────────────────────────────────────

    def create_parent(self, location: Location, register: bool = False) -> Optional[Location]:
        """
        The nearest enclosing location of `location`.

        Reuses the stored location when the backed-off parent is already known
        by name. Otherwise the fresh parent is returned as-is, or registered
        (with its own parent chain) when `register` is set.
        """
        parent = location.backoff()
        if parent is None:
            return None

        stored = self.find(parent)
        if stored is not None:
            return stored

        if register:
            self._register_new(parent)
        return parent

    def lookup_or_register(self, location: Location) -> Location:
        """The canonical stored location equal to `location`, registering it if new."""
        stored = self.find(location)
        if stored is not None:
            return stored
        self._register_new(location)
        return location

    def _register_new(self, location: Location) -> None:
        location_id = self._next_id
        self._next_id += 1

        location.id = location_id
        location.resolution_method = None
        self._put(location, location_id)

        parent = self.create_parent(location, register=True)
        if parent is not None:
            location.parent_id = parent.id
            self._link(location, parent)
        logger.debug("Registered new location %r under %r", location, parent)

    def _put(self, location: Location, location_id: int) -> None:
        self._id_to_location[location_id] = location
        self._location_to_id[location] = location_id

    def _link(self, location: Location, parent: Location) -> None:
        self._parent[location] = parent
        self._children.setdefault(parent, []).append(location)

    def _unlink(self, location: Location) -> None:
        parent = self._parent.pop(location)
        children = [c for c in self._children.get(parent, []) if c is not location]
        if children:
            self._children[parent] = children
        else:
            self._children.pop(parent, None)
