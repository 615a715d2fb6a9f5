"""
Shared fixtures: a small reference dataset written to a temp dir, and a
factory that builds resolvers over it with any config overrides.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tweet_geo.config import ResolverConfig
from tweet_geo.resolver import LocationResolver

LOCATIONS = [
    {"id": "1", "parent_id": "-1", "country": "United States", "state": "", "county": "", "city": "",
     "latitude": "39.0", "longitude": "-77.0", "aliases": ["usa", "united states"]},
    {"id": "2", "parent_id": "1", "country": "United States", "state": "Maryland", "county": "", "city": "",
     "latitude": "39.0458", "longitude": "-76.6413", "aliases": ["maryland"]},
    {"id": "3", "parent_id": "2", "country": "United States", "state": "Maryland", "county": "", "city": "Baltimore",
     "latitude": "39.2904", "longitude": "-76.6122", "aliases": ["baltimore", "baltimore, md"]},
    {"id": "4", "parent_id": "2", "country": "United States", "state": "Maryland", "county": "Montgomery County",
     "city": "", "latitude": "39.1547", "longitude": "-77.2405", "aliases": ["montgomery county"]},
    {"id": "5", "parent_id": "4", "country": "United States", "state": "Maryland", "county": "Montgomery County",
     "city": "Bethesda", "latitude": "38.9807", "longitude": "-77.1003", "aliases": ["bethesda"]},
    {"id": "6", "parent_id": "-1", "country": "Canada", "state": "", "county": "", "city": "",
     "latitude": "56.1304", "longitude": "-106.3468", "aliases": ["canada"]},
    {"id": "7", "parent_id": "6", "country": "Canada", "state": "Ontario", "county": "", "city": "Toronto",
     "latitude": "43.6532", "longitude": "-79.3832", "aliases": ["toronto"]},
    {"id": "8", "parent_id": "-1", "country": "France", "state": "", "county": "", "city": "",
     "latitude": "46.2276", "longitude": "2.2137", "aliases": ["france"]},
    {"id": "9", "parent_id": "8", "country": "France", "state": "", "county": "", "city": "Paris",
     "latitude": "48.8566", "longitude": "2.3522", "aliases": ["paris", "st. denis"]},
]

PLACE_NAME_MAPPING = "usa\tunited states\nunited states of america\tunited states\n"
STATE_NAMES = "Maryland\tMD\nCalifornia\tCA\nNew York\tNY\nOntario\tON\n"
COUNTRY_NAMES = "United States\tUS\nCanada\tCA\nFrance\tFR\n"


def write_reference_files(base: Path, locations: list[dict] = LOCATIONS) -> dict[str, Path]:
    paths = {
        "locations_file": base / "locations.json",
        "place_name_mapping_file": base / "place_name_mapping.tsv",
        "state_names_file": base / "state_names.tsv",
        "country_names_file": base / "country_names.tsv",
    }
    paths["locations_file"].write_text(
        "\n".join(json.dumps(row) for row in locations) + "\n", encoding="utf-8"
    )
    paths["place_name_mapping_file"].write_text(PLACE_NAME_MAPPING, encoding="utf-8")
    paths["state_names_file"].write_text(STATE_NAMES, encoding="utf-8")
    paths["country_names_file"].write_text(COUNTRY_NAMES, encoding="utf-8")
    return paths


@pytest.fixture
def reference_files(tmp_path) -> dict[str, Path]:
    return write_reference_files(tmp_path)


@pytest.fixture
def make_config(reference_files):
    defaults = dict(
        use_place=True,
        use_geocodes=True,
        use_user_string=True,
        use_unknown_places=True,
        use_known_parent_for_unknown_places=False,
        user_string_ngrams=True,
        geocode_max_distance=50.0,
    )

    def factory(**overrides) -> ResolverConfig:
        return ResolverConfig(**{**defaults, **reference_files, **overrides})

    return factory


@pytest.fixture
def make_resolver(make_config):
    def factory(**overrides) -> LocationResolver:
        return LocationResolver.from_config(make_config(**overrides))

    return factory


@pytest.fixture
def resolver(make_resolver) -> LocationResolver:
    return make_resolver()
