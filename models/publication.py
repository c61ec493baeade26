"""Pydantic models for published-video assignments.

The assignment status machine is ``draft -> published -> archived``; archived
is terminal.  Re-publishing an archived audience means creating a new row.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class AssignmentType(str, Enum):
    GENERAL    = "general"
    INDIVIDUAL = "individual"
    THEME      = "theme"


class AssignmentStatus(str, Enum):
    DRAFT     = "draft"
    PUBLISHED = "published"
    ARCHIVED  = "archived"


class ApprovalStatus(str, Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Legal forward transitions.
ASSIGNMENT_TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.DRAFT:     frozenset({AssignmentStatus.PUBLISHED}),
    AssignmentStatus.PUBLISHED: frozenset({AssignmentStatus.ARCHIVED}),
    AssignmentStatus.ARCHIVED:  frozenset(),
}


class InvalidTransition(ValueError):
    """Raised for a status change outside the assignment state machine."""


def check_transition(current: AssignmentStatus, new: AssignmentStatus) -> None:
    if new not in ASSIGNMENT_TRANSITIONS[current]:
        raise InvalidTransition(
            f"ERROR: illegal assignment transition {current.value} -> {new.value}"
        )


class VideoAssignment(BaseModel):
    id: str
    video_id: str
    assignment_type: AssignmentType
    child_id: str | None = None
    theme: str | None = None
    status: AssignmentStatus = AssignmentStatus.DRAFT
    is_active: bool = True
    publish_date: date | None = None

    @model_validator(mode="after")
    def _audience_fields_match_type(self) -> "VideoAssignment":
        general = self.assignment_type == AssignmentType.GENERAL
        if general != (self.child_id is None):
            raise ValueError("child_id must be null iff assignment_type is general")
        if self.assignment_type == AssignmentType.THEME and not self.theme:
            raise ValueError("theme assignments require a theme")
        return self

    @property
    def is_live(self) -> bool:
        """Active and published: the only state that grants visibility."""
        return self.is_active and self.status == AssignmentStatus.PUBLISHED


class ApprovedVideo(BaseModel):
    id: str
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    is_published: bool = False
    personalization_level: str = "generic"
    child_theme: str | None = None


class ChildProfile(BaseModel):
    id: str
    name: str
    primary_interest: str | None = None


class PublicationSnapshot(BaseModel):
    """Everything the visibility audit reads, as loaded from JSON."""

    children: list[ChildProfile] = Field(default_factory=list)
    videos: list[ApprovedVideo] = Field(default_factory=list)
    assignments: list[VideoAssignment] = Field(default_factory=list)
