"""
Tests for the reference data loaders and the alias index.
"""

from __future__ import annotations

import gzip
import json
import logging

import pytest

from tweet_geo.location import Location
from tweet_geo.reference import (
    NameIndex,
    load_locations,
    load_name_table,
    load_place_name_mapping,
    load_reference_data,
    normalize_name,
    read_location_records,
    strip_punctuation,
)


class TestNormalization:
    def test_normalize_name(self):
        assert normalize_name("  New   York\tCity ") == "new york city"

    def test_strip_punctuation(self):
        assert strip_punctuation("Born in the U.S.A.!") == "born in the u s a"
        assert strip_punctuation("St. Denis, France") == "st denis france"

    def test_strip_punctuation_keeps_commas(self):
        assert strip_punctuation("Somewhere-nice, M.D.", keep_commas=True) == "somewhere nice, m d"
        assert strip_punctuation("Baltimore,MD", keep_commas=True) == "baltimore,md"


class TestNameIndex:
    def test_aliases_and_punctuation_variants(self):
        names = NameIndex()
        paris = Location("France", city="Paris")
        names.add_aliases(paris, ["Paris", "St. Denis"])
        assert names.get("paris") is paris
        assert names.get("st. denis") is paris
        assert names.get("st denis") is paris

    def test_first_writer_wins(self, caplog):
        names = NameIndex()
        georgia_state = Location("United States", "Georgia")
        georgia_country = Location("Georgia")
        names.add_aliases(georgia_state, ["georgia"])
        with caplog.at_level(logging.WARNING):
            names.add_aliases(georgia_country, ["georgia", "sakartvelo"])
        assert names.get("georgia") is georgia_state
        assert names.get("sakartvelo") is georgia_country
        assert "Duplicate location name" in caplog.text

    def test_repeated_alias_in_one_record_is_silent(self, caplog):
        names = NameIndex()
        with caplog.at_level(logging.WARNING):
            added = names.add_aliases(Location("Canada"), ["canada", "Canada", "canada"])
        assert added == 1
        assert caplog.text == ""

    def test_max_tokens(self):
        names = NameIndex()
        names.add_aliases(Location("United States"), ["usa", "united states of america"])
        assert names.max_tokens == 4


class TestLocationFile:
    def test_reads_records(self, reference_files):
        records = list(read_location_records(reference_files["locations_file"]))
        assert len(records) == 9
        assert records[0].id == 1
        assert records[0].state is None

    def test_bad_lines_skipped(self, tmp_path, caplog):
        path = tmp_path / "locations.json"
        good = {"id": "1", "parent_id": "-1", "country": "Spain", "state": "", "county": "", "city": "",
                "latitude": "40.4", "longitude": "-3.7", "aliases": ["spain"]}
        path.write_text(
            "not json\n"
            + json.dumps({"id": "abc", "parent_id": "-1", "country": "Nowhere"}) + "\n"
            + json.dumps({"id": "2", "parent_id": "-1", "country": "Atlantis", "latitude": "NaN", "longitude": "0"}) + "\n"
            + json.dumps({"id": "3", "parent_id": "-1", "country": "Lemuria", "latitude": "0", "longitude": "inf"}) + "\n"
            + "\n"
            + json.dumps(good) + "\n",
            encoding="utf-8",
        )
        names = NameIndex()
        with caplog.at_level(logging.WARNING):
            locations = load_locations(path, names)
        assert [loc.id for loc in locations] == [1]
        assert names.get("spain") is locations[0]
        assert caplog.text.count("Skipping bad location") == 4

    def test_gzip(self, tmp_path):
        path = tmp_path / "locations.json.gz"
        row = {"id": "7", "parent_id": "-1", "country": "Peru", "latitude": "-9.2", "longitude": "-75.0",
               "aliases": ["peru"]}
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write(json.dumps(row) + "\n")
        locations = load_locations(path, NameIndex())
        assert locations[0] == Location("peru")

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(read_location_records(tmp_path / "nope.json"))


class TestNameTables:
    def test_state_table(self, reference_files):
        states = load_name_table(reference_files["state_names_file"])
        assert "maryland" in states.full_names
        assert states.abbreviations["md"] == "maryland"
        assert states.resolve("MD") == "maryland"
        assert states.resolve("Maryland") == "maryland"
        assert states.resolve("zz") is None

    def test_single_column_line(self, tmp_path):
        path = tmp_path / "countries.tsv"
        path.write_text("Atlantis\nFrance\tFR\n\n", encoding="utf-8")
        table = load_name_table(path)
        assert table.full_names == {"atlantis", "france"}
        assert table.abbreviations == {"fr": "france"}

    def test_place_name_mapping(self, reference_files):
        mapping = load_place_name_mapping(reference_files["place_name_mapping_file"])
        assert mapping["usa"] == "united states"

    def test_missing_table_is_fatal(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_name_table(tmp_path / "states.tsv")


class TestReferenceData:
    def test_load_all(self, make_config):
        data = load_reference_data(make_config())
        assert len(data.locations) == 9
        assert data.place_name_mapping
        assert "france" in data.countries.full_names

    def test_place_mapping_skipped_without_place_strategy(self, make_config, reference_files):
        reference_files["place_name_mapping_file"].unlink()
        data = load_reference_data(make_config(use_place=False))
        assert data.place_name_mapping == {}
