"""Resolution combiner: pick one winner per declared slot.

Candidates are ordered by a single score::

    (tier, theme_match, class_tagged, created_at)

lower tier first, then theme matches, then class-tagged assets over images
placed only by a reviewed safe zone, then the most recent asset; the asset
id breaks any remaining tie so the order is total.  Approved candidates
always outrank pending ones; a slot whose best candidate is pending is
``generating``.
"""

from typing import Iterable

from app.models.slot_schema import DeclaredSlot
from app.utils.logging import get_logger
from models.diagnostics import InsufficientLetterCoverage, ThemeMismatch
from models.resolution import ResolvedSlot
from resolvers.placeholder import make_missing, make_resolved
from resolvers.planner import Candidate

logger = get_logger("resolvers.combiner")


def score(candidate: Candidate) -> tuple:
    """Sort key: smaller is better."""
    return (
        int(candidate.tier),
        not candidate.theme_match,
        candidate.asset.source_rule == "safe_zone",
        -candidate.asset.created_at.timestamp(),
        candidate.asset.asset_id,
    )


def rank(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Approved candidates first, each group in score order."""
    return sorted(candidates, key=lambda c: (not c.asset.is_ready, score(c)))


class ResolutionCombiner:
    """Turn classified candidates into :class:`ResolvedSlot` records."""

    def combine(self, slot: DeclaredSlot, candidates: list[Candidate]) -> ResolvedSlot:
        """Resolve a single slot to its best candidate, or ``missing``."""
        ranked = rank(candidates)
        if not ranked:
            return make_missing(slot)
        return make_resolved(slot, ranked[0])

    def combine_family(
        self, slots: list[DeclaredSlot], candidates: list[Candidate]
    ) -> list[ResolvedSlot]:
        """Fill family positions with distinct assets in rank order."""
        ranked = rank(candidates)
        return [
            make_resolved(slot, ranked[i]) if i < len(ranked) else make_missing(slot)
            for i, slot in enumerate(slots)
        ]

    def combine_alternating(
        self, slots: list[DeclaredSlot], candidates: list[Candidate]
    ) -> tuple[list[ResolvedSlot], list[InsufficientLetterCoverage]]:
        """Fill letter-image positions alternating left-safe and right-safe.

        Even positions take left-safe images, odd positions right-safe ones.
        Only complete pairs count: with ``L`` left and ``R`` right images the
        family can fill ``min(L, R) * 2`` positions.  Images tagged for both
        zones go to whichever side is shorter; untagged letter backgrounds
        count as left-safe.  No image is used twice.

        Returns:
            The resolved positions and one :class:`InsufficientLetterCoverage`
            per position left unfilled.
        """
        left: list[Candidate] = []
        right: list[Candidate] = []
        both: list[Candidate] = []
        for candidate in rank(candidates):
            zones = candidate.asset.safe_zones
            if "left" in zones and "right" in zones:
                both.append(candidate)
            elif "right" in zones:
                right.append(candidate)
            else:
                left.append(candidate)
        for candidate in both:
            (left if len(left) <= len(right) else right).append(candidate)
        left, right = rank(left), rank(right)

        available = min(len(left), len(right)) * 2
        filled = min(available, len(slots))
        resolved: list[ResolvedSlot] = []
        shortfall: list[InsufficientLetterCoverage] = []
        for i, slot in enumerate(slots):
            if i < filled:
                if i % 2 == 0:
                    resolved.append(make_resolved(slot, left[i // 2], safe_zone="left"))
                else:
                    resolved.append(make_resolved(slot, right[i // 2], safe_zone="right"))
                continue
            resolved.append(make_missing(slot))
            shortfall.append(
                InsufficientLetterCoverage(
                    slot_key=slot.key,
                    available=available,
                    required=len(slots),
                    message=(
                        f"{slot.key}: {available} alternating letter images available, "
                        f"{len(slots)} required"
                    ),
                )
            )
        if shortfall:
            logger.info(
                "letter_coverage_short",
                left=len(left),
                right=len(right),
                available=available,
                required=len(slots),
            )
        return resolved, shortfall


def theme_mismatch(
    slot_key: str, requested_theme: str | None, available_themes: list[str]
) -> ThemeMismatch:
    return ThemeMismatch(
        slot_key=slot_key,
        requested_theme=requested_theme,
        available_themes=available_themes,
        message=(
            f"{slot_key}: no candidate matches theme {requested_theme!r}; "
            f"available: {', '.join(available_themes)}"
        ),
    )
