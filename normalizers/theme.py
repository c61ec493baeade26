"""Theme vocabulary normalizer.

Theme strings arrive from child profiles, asset metadata and assignment rows
in whatever form the author typed them ("Dogs", "dog", "Dinosaurs").  All
theme comparisons go through :meth:`ThemeNormalizer.normalize`; nothing else
in the resolver compares raw theme strings.

The synonym table is data, loaded from JSON::

    {"dog": ["dog", "dogs", "puppy"], "dinosaur": ["dinosaur", "dinosaurs"]}

Unknown themes pass through trimmed and lower-cased.
"""

import json
import re
from pathlib import Path

from app.config import theme_table_path
from app.utils.logging import get_logger

logger = get_logger("normalizers.theme")

_WHITESPACE = re.compile(r"\s+")


def _clean(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip().lower())


class ThemeNormalizer:
    """Map theme strings onto canonical comparison keys.

    Args:
        synonyms: ``{canonical: [variant, ...]}``.  Canonical keys always map
            to themselves, so normalization is idempotent.

    Raises:
        ValueError: If one variant is claimed by two classes, or a canonical
            key is listed as a variant of another class (which would make the
            mapping non-idempotent).
    """

    def __init__(self, synonyms: dict[str, list[str]]) -> None:
        table: dict[str, str] = {}
        canonicals = {_clean(c) for c in synonyms}

        for canonical, variants in synonyms.items():
            canon = _clean(canonical)
            for variant in [canonical, *variants]:
                key = _clean(variant)
                if key in canonicals and key != canon:
                    raise ValueError(
                        f"ERROR: theme {key!r} is canonical but listed as a synonym of {canon!r}"
                    )
                owner = table.get(key)
                if owner is not None and owner != canon:
                    raise ValueError(
                        f"ERROR: theme {key!r} claimed by both {owner!r} and {canon!r}"
                    )
                table[key] = canon

        self._table = table

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> "ThemeNormalizer":
        """Load the synonym table from *path* (or the configured default)."""
        table_path = theme_table_path(path)
        try:
            data = json.loads(table_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValueError(f"ERROR: cannot load theme table {table_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"ERROR: theme table {table_path} must be a JSON object")
        logger.debug("theme_table_loaded", path=str(table_path), classes=len(data))
        return cls(data)

    def normalize(self, theme: str | None) -> str | None:
        """Return the canonical key for *theme*; ``None`` for null/blank input."""
        if theme is None:
            return None
        key = _clean(theme)
        if not key:
            return None
        return self._table.get(key, key)

    def equal(self, a: str | None, b: str | None) -> bool:
        """True when both themes are present and normalize to the same key."""
        na, nb = self.normalize(a), self.normalize(b)
        return na is not None and na == nb

    def variants(self, theme: str | None) -> tuple[str, ...]:
        """All known spellings that normalize like *theme*, sorted."""
        canon = self.normalize(theme)
        if canon is None:
            return ()
        return tuple(sorted(k for k, v in self._table.items() if v == canon) or (canon,))


_default: ThemeNormalizer | None = None


def default_normalizer() -> ThemeNormalizer:
    """Process-wide normalizer built from the configured synonym table."""
    global _default
    if _default is None:
        _default = ThemeNormalizer.from_file()
    return _default


def normalize_theme(theme: str | None) -> str | None:
    return default_normalizer().normalize(theme)


def themes_equal(a: str | None, b: str | None) -> bool:
    return default_normalizer().equal(a, b)
