"""Pydantic models for asset catalog rows and their normalized view.

``AssetRecord`` mirrors a raw catalog row; its ``metadata`` map is open and
differs by schema generation (explicit ``imageType``/``assetPurpose``/
``videoType``, the ``asset_class`` generation, legacy ``section``/``category``,
or a bare ``prompt``).  ``NormalizedAsset`` is the single canonical shape
produced at the catalog boundary by :mod:`normalizers.metadata`.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


class AssetStatus(str, Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses that may become candidates; pending is visible but never "ready".
ELIGIBLE_STATUSES: frozenset[AssetStatus] = frozenset(
    {AssetStatus.APPROVED, AssetStatus.PENDING}
)

SafeZone = Literal["left", "right", "intro", "outro"]

SourceRule = Literal[
    "explicit",
    "asset_class",
    "legacy_section",
    "legacy_category",
    "safe_zone",
    "prompt",
    "unclassified",
]


class AssetRecord(BaseModel):
    """One raw row from the asset catalog.  Read-only to the resolver."""

    model_config = ConfigDict(frozen=True)

    id: str
    media_type: MediaType
    status: AssetStatus
    file_url: str = ""
    created_at: datetime = Field(
        default_factory=lambda: datetime(1970, 1, 1, tzinfo=timezone.utc)
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    theme: str | None = None
    """Legacy top-level theme column; metadata keys take precedence."""

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # Naive timestamps from older rows are UTC.
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class NormalizedAsset(BaseModel):
    """Canonical metadata tuple for one asset."""

    model_config = ConfigDict(frozen=True)

    asset_id: str
    media_type: MediaType
    status: AssetStatus
    url: str
    created_at: datetime

    slot_key: str | None
    """Template slot this asset fills; ``None`` means unclassified."""

    letter: str | None = None
    child_name: str | None = None
    theme: str | None = None
    """Theme as written in the catalog (display form, not normalized)."""

    template: str | None = None
    safe_zones: frozenset[SafeZone] = frozenset()
    source_rule: SourceRule = "unclassified"

    @property
    def is_ready(self) -> bool:
        return self.status == AssetStatus.APPROVED
