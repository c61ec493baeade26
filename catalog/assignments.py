"""Assignment store with compare-and-set status updates.

The visibility reconciliation never writes blindly: every status advance is
``UPDATE ... SET status = new WHERE id = ? AND status = expected``.  A False
return means someone else changed the row first (an admin archived it, or a
concurrent repair already published it); the caller reports and moves on.
"""

import json
import threading
from pathlib import Path
from typing import Iterable, Protocol

from app.utils.logging import get_logger
from models.publication import AssignmentStatus, VideoAssignment, check_transition

logger = get_logger("catalog.assignments")


class AssignmentStore(Protocol):
    def all_assignments(self) -> list[VideoAssignment]:
        ...

    def assignments_for_video(self, video_id: str) -> list[VideoAssignment]:
        ...

    def compare_and_set_status(
        self, assignment_id: str, expected: AssignmentStatus, new: AssignmentStatus
    ) -> bool:
        ...


class InMemoryAssignmentStore:
    """Lock-guarded assignment rows keyed by id."""

    def __init__(self, assignments: Iterable[VideoAssignment] = ()) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, VideoAssignment] = {a.id: a for a in assignments}

    def all_assignments(self) -> list[VideoAssignment]:
        with self._lock:
            return list(self._rows.values())

    def assignments_for_video(self, video_id: str) -> list[VideoAssignment]:
        with self._lock:
            return [a for a in self._rows.values() if a.video_id == video_id]

    def get(self, assignment_id: str) -> VideoAssignment | None:
        with self._lock:
            return self._rows.get(assignment_id)

    def compare_and_set_status(
        self, assignment_id: str, expected: AssignmentStatus, new: AssignmentStatus
    ) -> bool:
        """Set *new* only if the row still has status *expected*.

        Raises:
            InvalidTransition: If ``expected -> new`` is not a legal transition.
        """
        check_transition(expected, new)
        with self._lock:
            row = self._rows.get(assignment_id)
            if row is None or row.status != expected:
                logger.info(
                    "assignment_cas_lost",
                    assignment_id=assignment_id,
                    expected=expected.value,
                    actual=row.status.value if row else None,
                )
                return False
            self._rows[assignment_id] = row.model_copy(update={"status": new})
        return True

    def dump(self, path: str | Path) -> None:
        """Write all rows to *path* as JSON, ordered by id."""
        rows = sorted(self.all_assignments(), key=lambda a: a.id)
        Path(path).write_text(
            json.dumps([a.model_dump(mode="json") for a in rows], indent=2),
            encoding="utf-8",
        )
