"""Runtime configuration for the slot resolver.

Every setting follows the same priority chain:
  1. Explicit argument (constructor / CLI flag)
  2. Environment variable
  3. Built-in default

Environment variables:
  SLOT_RESOLVER_THEME_TABLE  Path to a theme-synonym JSON table
                             (``{canonical: [variant, ...]}``).
  SLOT_RESOLVER_LOG_LEVEL    DEBUG | INFO | WARNING | ERROR  (default WARNING)
  SLOT_RESOLVER_LOG_FORMAT   console | json                  (default console)
  SLOT_RESOLVER_CATALOG      Default catalog snapshot used by scripts/.
"""

import os
from pathlib import Path

# Bundled synonym table, shipped next to the theme normalizer.
DEFAULT_THEME_TABLE = (
    Path(__file__).resolve().parent.parent / "normalizers" / "theme_synonyms.json"
)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("console", "json")


def theme_table_path(explicit: str | Path | None = None) -> Path:
    """Return the theme-synonym table to load."""
    chosen = explicit or os.environ.get("SLOT_RESOLVER_THEME_TABLE")
    return Path(chosen).resolve() if chosen else DEFAULT_THEME_TABLE


def catalog_path(explicit: str | Path | None = None) -> Path | None:
    """Return the catalog snapshot path for scripts, or ``None`` when unset."""
    chosen = explicit or os.environ.get("SLOT_RESOLVER_CATALOG")
    return Path(chosen) if chosen else None


def log_level(explicit: str | None = None) -> str:
    level = (explicit or os.environ.get("SLOT_RESOLVER_LOG_LEVEL") or "WARNING").upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"ERROR: unknown log level {level!r}; expected one of {_LOG_LEVELS}")
    return level


def log_format(explicit: str | None = None) -> str:
    fmt = (explicit or os.environ.get("SLOT_RESOLVER_LOG_FORMAT") or "console").lower()
    if fmt not in _LOG_FORMATS:
        raise ValueError(f"ERROR: unknown log format {fmt!r}; expected one of {_LOG_FORMATS}")
    return fmt
