from __future__ import annotations

import argparse
import json
from pathlib import Path

from tweet_geo.config import DATA_DIR
from tweet_geo.hierarchy import HierarchyStore
from tweet_geo.reference import NameIndex, load_locations

# city -> county -> state -> country -> root, with room for one more level
MAX_DEPTH = 5


def check(locations_file: Path) -> dict:
    names = NameIndex()
    locations = load_locations(locations_file, names)

    store = HierarchyStore()
    for location in locations:
        store.add_known(location)
    orphans = store.link_declared_parents()

    unclosed = []
    for location in store.known_locations():
        chain = list(store.ancestors(location))
        if len(chain) > MAX_DEPTH or not chain or not chain[-1].is_none:
            unclosed.append(location.id)

    return {
        "locations": len(locations),
        "names": len(names),
        "orphans": orphans,
        "unclosed_ids": unclosed,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Check a reference location dataset.")
    parser.add_argument("--locations", default=str(DATA_DIR / "locations.json"))
    args = parser.parse_args()

    report = check(Path(args.locations))
    print(json.dumps(report, indent=2))
    if report["unclosed_ids"]:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
