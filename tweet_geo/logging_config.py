"""
Structured logging configuration.
JSON logs in production, human-readable in development.
"""

from __future__ import annotations

import logging
import sys

from tweet_geo.config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure logging based on environment."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.env == "production":
        # One JSON object per line on stderr so stdout stays free for resolved tweets
        try:
            import json_log_formatter

            formatter = json_log_formatter.JSONFormatter()
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)

            root = logging.getLogger()
            root.setLevel(level)
            root.handlers = [handler]
        except ImportError:
            _setup_basic_logging(level)
    else:
        _setup_basic_logging(level)


def _setup_basic_logging(level: int) -> None:
    """Human-readable logging for development."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
