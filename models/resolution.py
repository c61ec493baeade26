"""Pydantic models for resolved slot maps and readiness reports.

A resolution run produces exactly one :class:`ResolvedSlot` per declared slot;
``missing`` and ``generating`` are valid terminal values, not errors.
"""

from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, Field

from models.diagnostics import Diagnostic
from models.request import TemplateRequest


class Tier(IntEnum):
    """Candidate specificity; lower value wins."""

    CHILD_LETTER = 1
    LETTER       = 2
    THEME        = 3
    GENERIC      = 4


SlotStatus = Literal["ready", "generating", "missing"]


class ResolvedSlot(BaseModel):
    """The binding of one declared slot to (at most) one catalog asset."""

    slot_key: str
    media_type: str
    status: SlotStatus = "missing"

    asset_id: str | None = None
    url: str | None = None
    source_tier: Tier | None = None
    matched_theme: bool = False
    """True when the winning candidate's theme normalizes to the request theme."""

    letter: str | None = None
    """Letter this slot is bound to (family members such as ``letterAudio[N]``)."""

    safe_zone: Literal["left", "right"] | None = None
    """Safe zone used for name-video letter images."""

    required: bool = False

    @property
    def is_ready(self) -> bool:
        return self.status == "ready"


class BlockingReason(BaseModel):
    """Why a template cannot be generated yet."""

    code: Literal[
        "missing_required_slot",
        "slot_generating",
        "insufficient_completion",
        "insufficient_letter_coverage",
    ]
    slot_key: str | None = None
    """``None`` for template-wide reasons (completion threshold)."""

    required: int | None = None
    actual: int | None = None
    message: str = ""


class ReadinessReport(BaseModel):
    can_generate: bool
    ready_count: int
    total_slots: int
    completion_percent: int
    """``round_half_up(ready_count / total_slots * 100)``."""

    min_completion_percent: int
    blocking_reasons: list[BlockingReason] = Field(default_factory=list)


class DisplayImage(BaseModel):
    source: Literal["slot", "template_default", "none"] = "none"
    url: str | None = None
    slot_key: str | None = None
    asset_class: str | None = None


class ResolutionResult(BaseModel):
    """Envelope returned by :class:`resolvers.slots.SlotResolver`."""

    request: TemplateRequest
    template_type: str
    slots: dict[str, ResolvedSlot]
    """Declared slots in schema order."""

    diagnostics: list[Diagnostic] = Field(default_factory=list)
    readiness: ReadinessReport
    display_image: DisplayImage = Field(default_factory=DisplayImage)

    schema_id: str = "ResolutionResult"
    schema_version: str = "1.0.0"
    producer: str = "resolvers/slots"

    @property
    def can_generate(self) -> bool:
        return self.readiness.can_generate
