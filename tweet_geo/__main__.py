"""CLI entrypoint for tweet_geo."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
import time
from typing import Optional

from tweet_geo.config import ResolverConfig, Settings, get_settings
from tweet_geo.io_utils import open_text, read_json_lines
from tweet_geo.logging_config import setup_logging
from tweet_geo.stats import ResolutionStats

logger = logging.getLogger("tweet_geo")

LOCATION_FIELD = "location"


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tweet-geo")
    parser.add_argument("--config", help="properties file layered under the environment")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve_parser = sub.add_parser("resolve", help="resolve locations for a file of tweets")
    resolve_parser.add_argument("input_file")
    resolve_parser.add_argument("--output", dest="output_file")

    stats_parser = sub.add_parser("stats", help="resolve known locations only and report statistics")
    stats_parser.add_argument("input_file")
    stats_parser.add_argument("--output", dest="output_file")

    show_parser = sub.add_parser("show", help="print a location and its ancestors")
    show_parser.add_argument("location_id", type=int)

    args = parser.parse_args(argv)

    settings = get_settings(args.config)
    setup_logging(settings)

    if args.command == "resolve":
        _resolve_file(settings, args.input_file, args.output_file)
    elif args.command == "stats":
        _stats_file(settings, args.input_file, args.output_file)
    elif args.command == "show":
        _show(settings, args.location_id)


def _build_resolver(config: ResolverConfig):
    from tweet_geo.resolver import LocationResolver

    logger.info("Creating LocationResolver.")
    return LocationResolver.from_config(config)


def _run(resolver, input_file: str, output_file: Optional[str], stats: ResolutionStats,
         skip_root: bool = False) -> None:
    writer = open_text(output_file, "w") if output_file else None
    if writer is not None:
        logger.info("Saving geolocated tweets to: %s", output_file)
    try:
        for tweet in read_json_lines(input_file, on_error=stats.skip):
            location = resolver.resolve(tweet)
            stats.observe(tweet, location)
            if location is not None and not (skip_root and location.is_none):
                logger.debug("Found location: %r", location)
                tweet[LOCATION_FIELD] = location.to_dict()
            if writer is not None:
                writer.write(json.dumps(tweet, ensure_ascii=False))
                writer.write("\n")
            if stats.total % 10000 == 0:
                logger.info("Processed %d tweets", stats.total)
    finally:
        if writer is not None:
            writer.close()


def _resolve_file(settings: Settings, input_file: str, output_file: Optional[str]) -> None:
    resolver = _build_resolver(settings.resolver)
    stats = ResolutionStats()
    _run(resolver, input_file, output_file, stats)
    logger.info("Resolved locations for %d of %d tweets.", stats.resolved, stats.total)


def _stats_file(settings: Settings, input_file: str, output_file: Optional[str]) -> None:
    start = time.monotonic()
    # Statistics only count places that exist in the reference data
    config = dataclasses.replace(settings.resolver, use_unknown_places=False)
    resolver = _build_resolver(config)
    stats = ResolutionStats()
    _run(resolver, input_file, output_file, stats, skip_root=True)
    stats.log_summary(logger)
    logger.info("Done in %.1fs", time.monotonic() - start)


def _show(settings: Settings, location_id: int) -> None:
    from tweet_geo.hierarchy import LocationNotFoundError

    resolver = _build_resolver(settings.resolver)
    try:
        location = resolver.get_location_for_id(location_id)
    except LocationNotFoundError as e:
        print(e.args[0], file=sys.stderr)
        sys.exit(1)

    print(f"{location.id}: {location.display_string()}")
    for ancestor in resolver.store.ancestors(location):
        print(f"  in {ancestor.id}: {ancestor.display_string()}")
    children = resolver.get_children(location) or []
    print(f"  {len(children)} children")


if __name__ == "__main__":
    main()
