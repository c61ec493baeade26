"""Structured diagnostics returned alongside resolution and visibility results.

None of these are raised.  Each carries a ``kind`` discriminator so a list of
mixed diagnostics round-trips through JSON::

    TypeAdapter(list[Diagnostic]).validate_python(payload)
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class _DiagnosticBase(BaseModel):
    message: str = ""


class MissingRequiredSlot(_DiagnosticBase):
    kind: Literal["MissingRequiredSlot"] = "MissingRequiredSlot"
    slot_key: str
    status: Literal["missing", "generating"] = "missing"


class ThemeMismatch(_DiagnosticBase):
    kind: Literal["ThemeMismatch"] = "ThemeMismatch"
    slot_key: str
    requested_theme: str | None
    available_themes: list[str] = Field(default_factory=list)
    """Sorted distinct normalized themes among this slot's candidates."""


class InsufficientLetterCoverage(_DiagnosticBase):
    kind: Literal["InsufficientLetterCoverage"] = "InsufficientLetterCoverage"
    slot_key: str
    available: int
    required: int


class AssignmentConflict(_DiagnosticBase):
    kind: Literal["AssignmentConflict"] = "AssignmentConflict"
    video_id: str
    general_assignment_id: str
    """The general assignment; the probable error."""
    individual_assignment_ids: list[str] = Field(default_factory=list)


class OrphanedApproval(_DiagnosticBase):
    kind: Literal["OrphanedApproval"] = "OrphanedApproval"
    video_id: str
    reason: Literal["no_assignment", "only_archived"] = "no_assignment"


class UnclassifiedAsset(_DiagnosticBase):
    kind: Literal["UnclassifiedAsset"] = "UnclassifiedAsset"
    asset_id: str
    media_type: str


Diagnostic = Annotated[
    Union[
        MissingRequiredSlot,
        ThemeMismatch,
        InsufficientLetterCoverage,
        AssignmentConflict,
        OrphanedApproval,
        UnclassifiedAsset,
    ],
    Field(discriminator="kind"),
]
