"""In-memory asset catalog backed by a list of rows (or a JSON snapshot).

Used by the scripts (``--catalog snapshot.json``) and by tests.  Mutators
(``put``, ``set_status``, ``remove``) exist so tests can simulate the
moderation and generation workflows that edit the catalog concurrently with
resolution.
"""

import json
import threading
from pathlib import Path
from typing import Any, Iterable

from app.utils.logging import get_logger
from catalog.base import THEME_COLUMN, CatalogError, CatalogQuery
from models.catalog import AssetRecord, AssetStatus
from normalizers.metadata import TEMPLATE_KEYS, get_path

logger = get_logger("catalog.memory")


def _value(record: AssetRecord, path: str) -> Any:
    if path == THEME_COLUMN:
        return record.theme
    return get_path(record.metadata, path)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip().casefold()
    return None


def _any_equals(record: AssetRecord, paths: tuple[str, ...], values: tuple[str, ...]) -> bool:
    wanted = {v.strip().casefold() for v in values}
    return any(_text(_value(record, p)) in wanted for p in paths)


def matches(record: AssetRecord, query: CatalogQuery) -> bool:
    """Evaluate *query* against one row."""
    if record.status not in query.statuses:
        return False
    if query.media_types is not None and record.media_type not in query.media_types:
        return False
    if query.templates is not None and not _any_equals(record, TEMPLATE_KEYS, query.templates):
        return False
    for match in query.matches:
        if not _any_equals(record, match.paths, match.values):
            return False
    for paths in query.empty:
        if not all(_blank(_value(record, p)) for p in paths):
            return False
    for paths in query.present:
        if all(_blank(_value(record, p)) for p in paths):
            return False
    return True


class InMemoryAssetCatalog:
    """Thread-safe catalog over an in-memory row set.

    Args:
        records: Initial rows.  Later rows replace earlier ones with the same id.
    """

    def __init__(self, records: Iterable[AssetRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, AssetRecord] = {}
        for record in records:
            self._rows[record.id] = record

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryAssetCatalog":
        """Load a snapshot file: ``{"assets": [AssetRecord, ...]}``."""
        p = Path(path)
        try:
            payload = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"ERROR: cannot read catalog snapshot {p}: {exc}") from exc
        return cls.from_payload(payload)

    @classmethod
    def from_payload(cls, payload: dict) -> "InMemoryAssetCatalog":
        records = [AssetRecord.model_validate(row) for row in payload.get("assets", [])]
        logger.debug("catalog_snapshot_loaded", assets=len(records))
        return cls(records)

    def __len__(self) -> int:
        return len(self._rows)

    # ------------------------------------------------------------------
    # AssetCatalog protocol
    # ------------------------------------------------------------------

    def query(self, query: CatalogQuery) -> list[AssetRecord]:
        with self._lock:
            rows = list(self._rows.values())
        found = [r for r in rows if matches(r, query)]
        logger.debug("catalog_query", label=query.label, returned=len(found))
        return found

    # ------------------------------------------------------------------
    # Mutators (moderation / generation stand-ins)
    # ------------------------------------------------------------------

    def put(self, record: AssetRecord) -> None:
        with self._lock:
            self._rows[record.id] = record

    def set_status(self, asset_id: str, status: AssetStatus) -> None:
        with self._lock:
            current = self._rows.get(asset_id)
            if current is None:
                raise KeyError(asset_id)
            self._rows[asset_id] = current.model_copy(update={"status": status})

    def remove(self, asset_id: str) -> None:
        with self._lock:
            self._rows.pop(asset_id, None)
