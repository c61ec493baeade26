"""Asset catalog query contract.

The resolver depends only on this query capability, never on a storage
engine.  A :class:`CatalogQuery` is a conjunction of:

  - status-set membership and (optional) media-type membership
  - template membership across the alternative template keys
  - field matches: any of several metadata paths equals any of several
    values (case-insensitive), e.g. ``child_name | childName == "Andrew"``
  - empty checks: every listed path is null / empty string
  - present checks: at least one listed path is a non-blank string

The pseudo-path ``@theme`` addresses the legacy top-level theme column.

Production implementations translate this into their own filters (for a
JSONB column: ``metadata->>child_name.eq.X,metadata->>childName.eq.X``).
"""

from typing import Protocol

from pydantic import BaseModel, ConfigDict

from models.catalog import AssetRecord, AssetStatus, MediaType


# Pseudo-path for AssetRecord.theme (the legacy column, not a metadata key).
THEME_COLUMN = "@theme"


class CatalogError(RuntimeError):
    """The catalog could not answer a query (infrastructure failure)."""


class FieldMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    paths: tuple[str, ...]
    values: tuple[str, ...]


class CatalogQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str = ""
    """Human-readable name used in logs (e.g. ``tier:letter``)."""

    statuses: frozenset[AssetStatus]
    media_types: frozenset[MediaType] | None = None
    templates: tuple[str, ...] | None = None
    matches: tuple[FieldMatch, ...] = ()
    empty: tuple[tuple[str, ...], ...] = ()
    present: tuple[tuple[str, ...], ...] = ()


class AssetCatalog(Protocol):
    """Anything that can answer a :class:`CatalogQuery`."""

    def query(self, query: CatalogQuery) -> list[AssetRecord]:
        """Return matching rows.  Order is not significant to the resolver."""
        ...
