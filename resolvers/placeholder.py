"""Resolved-slot factory.

Every declared slot gets exactly one :class:`ResolvedSlot`; these helpers
build the three shapes (ready, generating, missing) so the combiner never
constructs one by hand.
"""

from typing import Literal

from app.models.slot_schema import DeclaredSlot
from models.resolution import ResolvedSlot
from resolvers.planner import Candidate


def make_missing(slot: DeclaredSlot) -> ResolvedSlot:
    """Return the terminal ``missing`` record for *slot*."""
    return ResolvedSlot(
        slot_key=slot.key,
        media_type=slot.definition.media_type.value,
        status="missing",
        letter=slot.letter,
        required=slot.definition.required,
    )


def make_resolved(
    slot: DeclaredSlot,
    candidate: Candidate,
    safe_zone: Literal["left", "right"] | None = None,
) -> ResolvedSlot:
    """Bind *candidate* to *slot*.

    Approved candidates make the slot ``ready``; pending ones make it
    ``generating`` with the pending asset's id so callers can track it.
    """
    asset = candidate.asset
    return ResolvedSlot(
        slot_key=slot.key,
        media_type=slot.definition.media_type.value,
        status="ready" if asset.is_ready else "generating",
        asset_id=asset.asset_id,
        url=asset.url or None,
        source_tier=candidate.tier,
        matched_theme=candidate.theme_match,
        letter=slot.letter,
        safe_zone=safe_zone,
        required=slot.definition.required,
    )
