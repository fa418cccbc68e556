"""Runtime settings for the catalog loader.

Settings are read from environment variables, optionally populated from a
``.env`` file in the working directory:

    CELESTIAL_DATABASE_URL      SQLAlchemy URL (default: local SQLite file)
    CELESTIAL_ROW_LIMIT         Rows requested from the catalog (default: 100)
    CELESTIAL_OBJECT_TYPE       Object type assigned to loaded rows (default: Star)
    CELESTIAL_NAME_PREFIX       Prefix for synthesized object names (default: Gaia-)
    CELESTIAL_GAIA_TABLE        Gaia table to query (default: gaiadr3.gaia_source)
    CELESTIAL_CAPTURE_HISTORY   Record history rows on change (default: true)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///celestial_catalog.db"
DEFAULT_GAIA_TABLE = "gaiadr3.gaia_source"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Loader settings."""

    database_url: str = DEFAULT_DATABASE_URL
    row_limit: int = 100
    object_type: str = "Star"
    name_prefix: str = "Gaia-"
    gaia_table: str = DEFAULT_GAIA_TABLE
    capture_history: bool = True


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_positive_int(name: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got {parsed}")
    return parsed


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> Settings:
    """Build settings from the environment.

    Args:
        env: Mapping to read instead of ``os.environ``. When given, no
            ``.env`` file is loaded.
        dotenv_path: Explicit ``.env`` file; defaults to searching upwards
            from the working directory.

    Returns:
        Populated Settings

    Raises:
        ValueError: If a variable cannot be parsed
    """
    if env is None:
        load_dotenv(dotenv_path=dotenv_path)
        env = os.environ

    defaults = Settings()
    row_limit = env.get("CELESTIAL_ROW_LIMIT")
    capture_history = env.get("CELESTIAL_CAPTURE_HISTORY")

    return Settings(
        database_url=env.get("CELESTIAL_DATABASE_URL", defaults.database_url),
        row_limit=(
            _parse_positive_int("CELESTIAL_ROW_LIMIT", row_limit)
            if row_limit is not None
            else defaults.row_limit
        ),
        object_type=env.get("CELESTIAL_OBJECT_TYPE", defaults.object_type),
        name_prefix=env.get("CELESTIAL_NAME_PREFIX", defaults.name_prefix),
        gaia_table=env.get("CELESTIAL_GAIA_TABLE", defaults.gaia_table),
        capture_history=(
            _parse_bool("CELESTIAL_CAPTURE_HISTORY", capture_history)
            if capture_history is not None
            else defaults.capture_history
        ),
    )
