"""Gzip-aware text file helpers shared by the loaders and the CLI."""

from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path
from typing import IO, Iterator

logger = logging.getLogger(__name__)


def open_text(path: Path | str, mode: str = "r") -> IO[str]:
    """Open a UTF-8 text file, transparently (de)compressing names ending in .gz."""
    path = Path(path)
    if path.name.endswith(".gz"):
        return gzip.open(path, mode + "t", encoding="utf-8")
    return path.open(mode, encoding="utf-8")


def read_json_lines(path: Path | str, on_error=None) -> Iterator[dict]:
    """
    Yield one JSON object per non-blank line.
    Malformed lines are logged and skipped; `on_error` is called for each one.
    """
    with open_text(path) as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping bad JSON at %s:%d", path, line_number)
                if on_error is not None:
                    on_error()
                continue
            if not isinstance(obj, dict):
                logger.warning("Skipping non-object line at %s:%d", path, line_number)
                if on_error is not None:
                    on_error()
                continue
            yield obj
