"""Readiness evaluator: can this template be generated right now?

Each template carries a :class:`~app.models.slot_schema.ReadinessContract`:
gating slots that must be ``ready``, a minimum completion percent and, for
name videos, a letter-coverage requirement.  Completion is computed the way
the request pages always displayed it::

    completion = round_half_up(ready_count / total_slots * 100)

The evaluator never raises; every failed condition becomes a structured
:class:`~models.resolution.BlockingReason`.
"""

from decimal import ROUND_HALF_UP, Decimal

from app.models.slot_schema import DeclaredSlot, TemplateSchema
from app.utils.logging import get_logger
from models.resolution import BlockingReason, ReadinessReport, ResolvedSlot

logger = get_logger("readiness.evaluator")


def completion_percent(ready_count: int, total_slots: int) -> int:
    """Integer percent, halves rounded up; 0 when there are no slots."""
    if total_slots <= 0:
        return 0
    value = Decimal(ready_count) * 100 / Decimal(total_slots)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ReadinessEvaluator:
    """Evaluate a resolved slot map against its template contract."""

    def evaluate(
        self,
        schema: TemplateSchema,
        declared: list[DeclaredSlot],
        slots: dict[str, ResolvedSlot],
    ) -> ReadinessReport:
        """Return the readiness report for *slots*.

        Args:
            schema:   Template whose contract applies.
            declared: Concrete slots in declaration order (families expanded).
            slots:    Resolved slot map keyed by concrete slot key.
        """
        contract = schema.readiness
        reasons: list[BlockingReason] = []

        for slot_key in schema.gating_slots:
            resolved = slots.get(slot_key)
            status = resolved.status if resolved is not None else "missing"
            if status == "ready":
                continue
            if status == "generating":
                reasons.append(
                    BlockingReason(
                        code="slot_generating",
                        slot_key=slot_key,
                        message=f"required slot {slot_key} is still generating",
                    )
                )
            else:
                reasons.append(
                    BlockingReason(
                        code="missing_required_slot",
                        slot_key=slot_key,
                        message=f"required slot {slot_key} has no asset",
                    )
                )

        if contract.require_letter_coverage:
            positions = [d for d in declared if d.definition.safe_zone_alternation]
            ready_positions = sum(1 for d in positions if slots[d.key].is_ready)
            if ready_positions < len(positions):
                family = positions[0].definition.slot_key
                reasons.append(
                    BlockingReason(
                        code="insufficient_letter_coverage",
                        slot_key=family,
                        required=len(positions),
                        actual=ready_positions,
                        message=(
                            f"{ready_positions} of {len(positions)} letter positions "
                            "have a ready image"
                        ),
                    )
                )

        total = len(declared)
        ready = sum(1 for d in declared if slots[d.key].is_ready)
        percent = completion_percent(ready, total)
        if percent < contract.min_completion_percent:
            reasons.append(
                BlockingReason(
                    code="insufficient_completion",
                    required=contract.min_completion_percent,
                    actual=percent,
                    message=(
                        f"completion {percent}% is below the "
                        f"{contract.min_completion_percent}% minimum"
                    ),
                )
            )

        report = ReadinessReport(
            can_generate=not reasons,
            ready_count=ready,
            total_slots=total,
            completion_percent=percent,
            min_completion_percent=contract.min_completion_percent,
            blocking_reasons=reasons,
        )
        logger.debug(
            "readiness_evaluated",
            template=schema.template_type.value,
            ready=ready,
            total=total,
            completion_percent=percent,
            can_generate=report.can_generate,
        )
        return report
