"""Publication visibility resolver and approval reconciliation.

Who sees a video is decided by its *live* assignments (``is_active`` and
``published``).  A child sees the union of:

  - individual assignments whose ``child_id`` is the child
  - general assignments (everyone)
  - theme assignments whose theme normalizes like the child's primary interest

Reconciliation is split into a pure planning step, which only reads and
reports, and an explicit apply step that writes through compare-and-set so a
concurrent admin edit (or an archived row) is never overwritten.
"""

from pydantic import BaseModel, Field

from app.utils.logging import get_logger
from catalog.assignments import AssignmentStore
from models.diagnostics import AssignmentConflict, Diagnostic, OrphanedApproval
from models.publication import (
    ApprovalStatus,
    ApprovedVideo,
    AssignmentStatus,
    AssignmentType,
    ChildProfile,
    VideoAssignment,
)
from normalizers.theme import ThemeNormalizer, default_normalizer

logger = get_logger("resolvers.visibility")


class PlannedAdvance(BaseModel):
    assignment_id: str
    video_id: str
    expected: AssignmentStatus = AssignmentStatus.DRAFT
    new: AssignmentStatus = AssignmentStatus.PUBLISHED


class ReconciliationPlan(BaseModel):
    """What a reconciliation pass would do; nothing has been written yet."""

    advances: list[PlannedAdvance] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class ReconciliationOutcome(BaseModel):
    applied: list[str] = Field(default_factory=list)
    """Assignment ids advanced by this pass."""

    skipped: list[str] = Field(default_factory=list)
    """Assignment ids whose compare-and-set lost to a concurrent change."""

    diagnostics: list[Diagnostic] = Field(default_factory=list)


class Audience(BaseModel):
    video_id: str
    everyone: bool = False
    child_ids: list[str] = Field(default_factory=list)
    conflicts: list[AssignmentConflict] = Field(default_factory=list)


class VisibilityResolver:
    """Answer "who sees this video" and reconcile approvals with assignments.

    Args:
        themes: Theme normalizer for theme assignments; defaults to the
            configured synonym table.
    """

    def __init__(self, themes: ThemeNormalizer | None = None) -> None:
        self.themes = themes or default_normalizer()

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def grants(self, assignment: VideoAssignment, child: ChildProfile) -> bool:
        """True when live *assignment* makes its video visible to *child*."""
        if not assignment.is_live:
            return False
        if assignment.assignment_type == AssignmentType.GENERAL:
            return True
        if assignment.assignment_type == AssignmentType.INDIVIDUAL:
            return assignment.child_id == child.id
        return self.themes.equal(assignment.theme, child.primary_interest)

    def visible_video_ids(
        self, child: ChildProfile, assignments: list[VideoAssignment]
    ) -> list[str]:
        """Sorted ids of every video *child* can see."""
        return sorted({a.video_id for a in assignments if self.grants(a, child)})

    def audience(
        self,
        video_id: str,
        assignments: list[VideoAssignment],
        children: list[ChildProfile],
    ) -> Audience:
        """Children who can see *video_id*, plus any assignment conflicts.

        A live general assignment makes the video visible to everyone even if
        individual rows suggest a narrower audience; that combination is
        reported as a conflict, not resolved.
        """
        rows = [a for a in assignments if a.video_id == video_id]
        conflicts = self.detect_conflicts(rows)
        everyone = any(
            a.is_live and a.assignment_type == AssignmentType.GENERAL for a in rows
        )
        child_ids = sorted(
            c.id for c in children if any(self.grants(a, c) for a in rows)
        )
        return Audience(
            video_id=video_id,
            everyone=everyone,
            child_ids=child_ids,
            conflicts=conflicts,
        )

    def detect_conflicts(self, assignments: list[VideoAssignment]) -> list[AssignmentConflict]:
        """Live general + live individual assignments on the same video."""
        by_video: dict[str, list[VideoAssignment]] = {}
        for a in assignments:
            if a.is_live:
                by_video.setdefault(a.video_id, []).append(a)

        conflicts: list[AssignmentConflict] = []
        for video_id in sorted(by_video):
            rows = by_video[video_id]
            general = sorted(a.id for a in rows if a.assignment_type == AssignmentType.GENERAL)
            individual = sorted(
                a.id for a in rows if a.assignment_type == AssignmentType.INDIVIDUAL
            )
            if not general or not individual:
                continue
            for general_id in general:
                conflicts.append(
                    AssignmentConflict(
                        video_id=video_id,
                        general_assignment_id=general_id,
                        individual_assignment_ids=individual,
                        message=(
                            f"video {video_id} is visible to all children through general "
                            f"assignment {general_id} but also individually assigned to "
                            f"{len(individual)} child(ren); the general assignment is "
                            "probably wrong"
                        ),
                    )
                )
                logger.warning(
                    "assignment_conflict",
                    video_id=video_id,
                    general_assignment_id=general_id,
                    individual_assignment_ids=individual,
                )
        return conflicts

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def plan_reconciliation(
        self, videos: list[ApprovedVideo], assignments: list[VideoAssignment]
    ) -> ReconciliationPlan:
        """Plan draft -> published advances for approved videos.

        For every approved video without a published assignment, each draft
        assignment is planned for publication.  Approved videos with no
        assignment at all, or only archived ones, are reported as
        :class:`OrphanedApproval`; no assignment is ever invented.
        """
        plan = ReconciliationPlan()
        for video in sorted(videos, key=lambda v: v.id):
            if video.approval_status != ApprovalStatus.APPROVED:
                continue
            rows = sorted((a for a in assignments if a.video_id == video.id), key=lambda a: a.id)
            if not rows:
                plan.diagnostics.append(
                    OrphanedApproval(
                        video_id=video.id,
                        reason="no_assignment",
                        message=f"approved video {video.id} has no assignment",
                    )
                )
                continue
            if any(a.status == AssignmentStatus.PUBLISHED for a in rows):
                continue
            drafts = [a for a in rows if a.status == AssignmentStatus.DRAFT]
            if not drafts:
                plan.diagnostics.append(
                    OrphanedApproval(
                        video_id=video.id,
                        reason="only_archived",
                        message=f"approved video {video.id} has only archived assignments",
                    )
                )
                continue
            plan.advances.extend(
                PlannedAdvance(assignment_id=a.id, video_id=video.id) for a in drafts
            )

        for diagnostic in plan.diagnostics:
            logger.warning("orphaned_approval", video_id=diagnostic.video_id, reason=diagnostic.reason)
        return plan

    def apply_reconciliation(
        self, plan: ReconciliationPlan, store: AssignmentStore
    ) -> ReconciliationOutcome:
        """Apply *plan* through compare-and-set; lost races are skipped."""
        outcome = ReconciliationOutcome(diagnostics=list(plan.diagnostics))
        for advance in plan.advances:
            if store.compare_and_set_status(advance.assignment_id, advance.expected, advance.new):
                outcome.applied.append(advance.assignment_id)
                logger.info(
                    "assignment_published",
                    assignment_id=advance.assignment_id,
                    video_id=advance.video_id,
                )
            else:
                outcome.skipped.append(advance.assignment_id)
                logger.info(
                    "assignment_advance_skipped",
                    assignment_id=advance.assignment_id,
                    video_id=advance.video_id,
                )
        return outcome

    def on_approval(self, video: ApprovedVideo, store: AssignmentStore) -> ReconciliationOutcome:
        """Reconcile one video right after its approval transition."""
        if video.approval_status != ApprovalStatus.APPROVED:
            return ReconciliationOutcome()
        plan = self.plan_reconciliation([video], store.assignments_for_video(video.id))
        return self.apply_reconciliation(plan, store)
