"""
Central configuration loaded from environment variables with sensible defaults.
An optional properties file (key=value) can be layered underneath the environment.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields
from functools import lru_cache
from pathlib import Path
from typing import Optional

# Sample reference data, shipped inside the package
DATA_DIR = Path(__file__).resolve().parent / "data"

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}

_VARIABLE_RE = re.compile(r"\{([^\\}]+)\}")


class ConfigError(ValueError):
    """A configuration value is missing, unresolvable or malformed."""


def parse_bool(key: str, value: str) -> bool:
    folded = value.strip().lower()
    if folded in _TRUE:
        return True
    if folded in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


def parse_distance(key: str, value: str) -> float:
    try:
        distance = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid number for {key}: {value!r}") from None
    if distance < 0:
        raise ConfigError(f"{key} must be non-negative, got {distance}")
    return distance


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return parse_bool(name, value)


def _env_path(name: str, default: Path) -> Path:
    return Path(os.getenv(name, str(default)))


# Field name -> environment variable. Environment always wins over a properties file.
ENV_NAMES: dict[str, str] = {
    "use_place": "RESOLVER_USE_PLACE",
    "use_geocodes": "RESOLVER_USE_GEOCODES",
    "use_user_string": "RESOLVER_USE_USER_STRING",
    "use_unknown_places": "RESOLVER_USE_UNKNOWN_PLACES",
    "use_known_parent_for_unknown_places": "RESOLVER_USE_KNOWN_PARENT",
    "user_string_ngrams": "RESOLVER_USER_STRING_NGRAMS",
    "geocode_max_distance": "GEOCODE_MAX_DISTANCE",
    "locations_file": "LOCATIONS_FILE",
    "place_name_mapping_file": "PLACE_NAME_MAPPING_FILE",
    "state_names_file": "STATE_NAMES_FILE",
    "country_names_file": "COUNTRY_NAMES_FILE",
}

# Keys accepted in properties files that predate the *_file naming.
_PROPERTY_ALIASES = {
    "locations": "locations_file",
    "place_name_mapping": "place_name_mapping_file",
}


@dataclass(frozen=True)
class ResolverConfig:
    # Strategy switches, tried in this order
    use_place: bool = field(default_factory=lambda: _env_bool("RESOLVER_USE_PLACE", True))
    use_geocodes: bool = field(default_factory=lambda: _env_bool("RESOLVER_USE_GEOCODES", True))
    use_user_string: bool = field(default_factory=lambda: _env_bool("RESOLVER_USE_USER_STRING", True))
    # Accept (and register) places that are not in the reference data
    use_unknown_places: bool = field(default_factory=lambda: _env_bool("RESOLVER_USE_UNKNOWN_PLACES", True))
    # Only consulted when use_unknown_places is off
    use_known_parent_for_unknown_places: bool = field(
        default_factory=lambda: _env_bool("RESOLVER_USE_KNOWN_PARENT", False)
    )
    user_string_ngrams: bool = field(default_factory=lambda: _env_bool("RESOLVER_USER_STRING_NGRAMS", True))
    # Miles
    geocode_max_distance: float = field(
        default_factory=lambda: parse_distance("GEOCODE_MAX_DISTANCE", os.getenv("GEOCODE_MAX_DISTANCE", "50.0"))
    )
    locations_file: Path = field(default_factory=lambda: _env_path("LOCATIONS_FILE", DATA_DIR / "locations.json"))
    place_name_mapping_file: Path = field(
        default_factory=lambda: _env_path("PLACE_NAME_MAPPING_FILE", DATA_DIR / "place_name_mapping.tsv")
    )
    state_names_file: Path = field(
        default_factory=lambda: _env_path("STATE_NAMES_FILE", DATA_DIR / "state_names.tsv")
    )
    country_names_file: Path = field(
        default_factory=lambda: _env_path("COUNTRY_NAMES_FILE", DATA_DIR / "country_names.tsv")
    )

    @classmethod
    def from_properties(cls, path: Path | str) -> "ResolverConfig":
        """Build a config from a properties file; environment variables still take precedence."""
        props = load_properties(path)
        for legacy, name in _PROPERTY_ALIASES.items():
            if legacy in props and name not in props:
                props[name] = props[legacy]

        overrides: dict[str, object] = {}
        for f in fields(cls):
            if ENV_NAMES[f.name] in os.environ or f.name not in props:
                continue
            overrides[f.name] = _coerce(f.name, props[f.name])
        return cls(**overrides)

    def enabled_strategies(self) -> list[str]:
        names = []
        if self.use_place:
            names.append("place")
        if self.use_geocodes:
            names.append("geocodes")
        if self.use_user_string:
            names.append("user profile")
        return names


def _coerce(name: str, raw: str) -> object:
    if name == "geocode_max_distance":
        return parse_distance(name, raw)
    if name.endswith("_file"):
        return Path(raw)
    return parse_bool(name, raw)


def load_properties(path: Path | str) -> dict[str, str]:
    """
    Read a java-style properties file.
    Supports '#'/'!' comments, 'key=value' and 'key: value', and '{key}'
    references to other keys in the same file or the environment.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing properties file: {path}")

    raw: dict[str, str] = {}
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line[0] in "#!":
                continue
            match = re.match(r"^([^=:\s]+)\s*[=:]\s*(.*)$", line)
            if not match:
                raise ConfigError(f"Unparsable line in {path}: {line!r}")
            raw[match.group(1)] = match.group(2).strip()

    return {key: _interpolate(key, value, raw) for key, value in raw.items()}


def _interpolate(key: str, value: str, raw: dict[str, str], depth: int = 0) -> str:
    if depth > 10:
        raise ConfigError(f"Property {key} has circular references")

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name in raw:
            return _interpolate(name, raw[name], raw, depth + 1)
        if name in os.environ:
            return os.environ[name]
        raise ConfigError(f"Cannot resolve [{name}] in property {key}")

    return _VARIABLE_RE.sub(replace, value)


@dataclass(frozen=True)
class Settings:
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings(properties_file: Optional[str] = None) -> Settings:
    """Settings instance, cached per properties file."""
    if properties_file:
        return Settings(resolver=ResolverConfig.from_properties(properties_file))
    return Settings()
