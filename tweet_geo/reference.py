"""
Reference data loaders.

Four resources feed the resolver:
  - locations: one JSON object per line (id, parent_id, names, centre, aliases)
  - place name mapping: raw<TAB>normalized, applied to place countries
  - state names: full<TAB>abbreviation
  - country names: full<TAB>abbreviation

A missing file is fatal. A bad line inside a file is logged and skipped.
"""

from __future__ import annotations

import json
import logging
import re
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from tweet_geo.config import ResolverConfig
from tweet_geo.io_utils import open_text
from tweet_geo.location import Location
from tweet_geo.models import LocationRecord

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile("[" + re.escape(string.punctuation) + "]")
_PUNCTUATION_NO_COMMA_RE = re.compile("[" + re.escape(string.punctuation.replace(",", "")) + "]")


# ── Text normalization ─────────────────────────────────────────────────

def normalize_name(text: str) -> str:
    """Lowercase, trim and collapse whitespace."""
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def strip_punctuation(text: str, keep_commas: bool = False) -> str:
    """Replace ASCII punctuation with spaces, then normalize."""
    pattern = _PUNCTUATION_NO_COMMA_RE if keep_commas else _PUNCTUATION_RE
    return normalize_name(pattern.sub(" ", text))


# ── Alias index ────────────────────────────────────────────────────────

class NameIndex:
    """Normalized alias -> Location. The first location to claim an alias keeps it."""

    def __init__(self) -> None:
        self._names: dict[str, Location] = {}
        self.max_tokens = 0

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def get(self, name: str) -> Optional[Location]:
        return self._names.get(name)

    def add_aliases(self, location: Location, aliases: list[str]) -> int:
        """Index each alias and its punctuation-free form. Returns how many keys were added."""
        added = 0
        claimed: set[str] = set()
        for alias in aliases:
            if not isinstance(alias, str):
                continue
            for key in (normalize_name(alias), strip_punctuation(alias)):
                if not key or key in claimed:
                    continue
                claimed.add(key)
                if key in self._names:
                    logger.warning("Duplicate location name: %r (kept %r, dropped %r)",
                                   key, self._names[key], location)
                    continue
                self._names[key] = location
                self.max_tokens = max(self.max_tokens, len(key.split(" ")))
                added += 1
        return added


# ── Name tables ────────────────────────────────────────────────────────

@dataclass
class NameTable:
    """Full names plus an abbreviation -> full name map, all lowercase."""
    full_names: set[str] = field(default_factory=set)
    abbreviations: dict[str, str] = field(default_factory=dict)

    def resolve(self, token: str) -> Optional[str]:
        token = token.lower()
        if token in self.full_names:
            return token
        return self.abbreviations.get(token)


def _read_tsv(path: Path | str) -> Iterator[list[str]]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing reference file: {path}")
    with open_text(path) as f:
        for line in f:
            line = line.rstrip("\r\n").lower()
            if not line.strip():
                continue
            yield [col.strip() for col in line.split("\t")]


def load_name_table(path: Path | str) -> NameTable:
    table = NameTable()
    for cols in _read_tsv(path):
        full = cols[0]
        if not full:
            continue
        table.full_names.add(full)
        if len(cols) > 1 and cols[1]:
            table.abbreviations[cols[1]] = full
    logger.info("Loaded %d names (%d abbreviations) from %s",
                len(table.full_names), len(table.abbreviations), path)
    return table


def load_place_name_mapping(path: Path | str) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for cols in _read_tsv(path):
        if len(cols) < 2 or not cols[0] or not cols[1]:
            logger.warning("Skipping place name mapping line without two columns: %r", "\t".join(cols))
            continue
        mapping[cols[0]] = cols[1]
    logger.info("Loaded %d place name mappings from %s", len(mapping), path)
    return mapping


# ── Locations ──────────────────────────────────────────────────────────

def read_location_records(path: Path | str) -> Iterator[LocationRecord]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing location dataset: {path}")

    with open_text(path) as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                yield LocationRecord.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping bad location at %s:%d: %s", path, line_number, e)


@dataclass
class ReferenceData:
    locations: list[Location] = field(default_factory=list)
    names: NameIndex = field(default_factory=NameIndex)
    place_name_mapping: dict[str, str] = field(default_factory=dict)
    states: NameTable = field(default_factory=NameTable)
    countries: NameTable = field(default_factory=NameTable)


def load_locations(path: Path | str, names: NameIndex) -> list[Location]:
    locations: list[Location] = []
    for record in read_location_records(path):
        location = Location.from_record(record)
        names.add_aliases(location, record.aliases)
        locations.append(location)
    if not locations:
        logger.warning("No locations loaded from %s", path)
    logger.info("Loaded %d locations and %d names from %s", len(locations), len(names), path)
    return locations


def load_reference_data(config: ResolverConfig) -> ReferenceData:
    data = ReferenceData()
    data.locations = load_locations(config.locations_file, data.names)
    if config.use_place:
        data.place_name_mapping = load_place_name_mapping(config.place_name_mapping_file)
    data.states = load_name_table(config.state_names_file)
    data.countries = load_name_table(config.country_names_file)
    return data
