"""SlotResolver: request in, resolved slot map + diagnostics + readiness out.

Usage::

    resolver = SlotResolver(InMemoryAssetCatalog.from_json("catalog.json"))
    result = resolver.resolve(
        TemplateRequest(child_name="Andrew", template_type="letter-hunt",
                        target_letter="A", theme="dogs")
    )
    result.slots["introVideo"].status   # "ready" | "generating" | "missing"

Resolution is a pure read over the rows returned by this call's catalog
queries.  Nothing is cached between calls, so repeated calls against an
unchanged catalog return identical results.
"""

from itertools import groupby

from app.models.slot_schema import (
    DEFAULT_REGISTRY,
    DeclaredSlot,
    Dimension,
    Expansion,
    SlotSchemaRegistry,
    TemplateSchema,
)
from app.utils.logging import get_logger
from catalog.base import AssetCatalog
from catalog.defaults import TemplateDefaults
from models.diagnostics import MissingRequiredSlot
from models.request import TemplateRequest
from models.resolution import DisplayImage, ResolutionResult, ResolvedSlot
from normalizers.theme import ThemeNormalizer, default_normalizer
from readiness.evaluator import ReadinessEvaluator
from resolvers.combiner import ResolutionCombiner, theme_mismatch
from resolvers.planner import CandidatePool, CandidateQueryPlanner


class SlotResolver:
    """Resolve every declared slot of a template request.

    Args:
        catalog:  Anything implementing :class:`~catalog.base.AssetCatalog`.
        registry: Slot schemas; defaults to the built-in templates.
        themes:   Theme normalizer; defaults to the configured synonym table.
        defaults: Per-template display defaults used when no thumbnail is ready.
    """

    def __init__(
        self,
        catalog: AssetCatalog,
        registry: SlotSchemaRegistry | None = None,
        themes: ThemeNormalizer | None = None,
        defaults: TemplateDefaults | None = None,
    ) -> None:
        self.catalog = catalog
        self.registry = registry or DEFAULT_REGISTRY
        self.themes = themes or default_normalizer()
        self.defaults = defaults or TemplateDefaults()
        self.planner = CandidateQueryPlanner(self.themes)
        self.combiner = ResolutionCombiner()
        self.evaluator = ReadinessEvaluator()
        self._log = get_logger("resolvers.slots")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, request: TemplateRequest) -> ResolutionResult:
        """Resolve *request* against the catalog.

        Raises:
            InvalidTemplateRequest: Unknown template type, or a letter/theme
                the template needs is missing.
        """
        schema = self.registry.get(request.template_type)
        request = schema.validate_request(request)
        declared = schema.declared_slots(request)
        log = self._log.bind(template=schema.template_type.value, child=request.child_name)

        queries = self.planner.queries(schema, request, declared)
        pool = self.planner.gather(self.catalog, queries)
        diagnostics: list = list(pool.unclassified)

        slots: dict[str, ResolvedSlot] = {}
        for _, members in groupby(declared, key=lambda d: d.definition.slot_key):
            group = list(members)
            resolved, extra = self._resolve_group(schema, request, pool, group)
            for slot in resolved:
                slots[slot.slot_key] = slot
            diagnostics.extend(extra)

        for slot in slots.values():
            if slot.status == "ready":
                continue
            # slot_missing / slot_generating
            log.debug(f"slot_{slot.status}", slot_key=slot.slot_key, required=slot.required)
            if slot.required:
                diagnostics.append(
                    MissingRequiredSlot(
                        slot_key=slot.slot_key,
                        status=slot.status,
                        message=f"required slot {slot.slot_key} is {slot.status}",
                    )
                )

        readiness = self.evaluator.evaluate(schema, declared, slots)
        result = ResolutionResult(
            request=request,
            template_type=schema.template_type.value,
            slots=slots,
            diagnostics=diagnostics,
            readiness=readiness,
            display_image=self._display_image(schema, slots),
        )
        log.info(
            "slots_resolved",
            candidates=len(pool.assets),
            ready=readiness.ready_count,
            total=readiness.total_slots,
            completion_percent=readiness.completion_percent,
            can_generate=readiness.can_generate,
            diagnostics=len(diagnostics),
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_group(
        self,
        schema: TemplateSchema,
        request: TemplateRequest,
        pool: CandidatePool,
        group: list[DeclaredSlot],
    ) -> tuple[list[ResolvedSlot], list]:
        definition = group[0].definition
        extra: list = []

        if definition.expand in (Expansion.NONE, Expansion.UNIQUE_NAME_LETTERS):
            # Each member has its own letter, hence its own candidate set.
            resolved = [
                self.combiner.combine(
                    slot, self.planner.candidates(pool, slot, schema, request)
                )
                for slot in group
            ]
        else:
            candidates = self.planner.candidates(pool, group[0], schema, request)
            if definition.safe_zone_alternation:
                resolved, shortfall = self.combiner.combine_alternating(group, candidates)
                extra.extend(shortfall)
            else:
                resolved = self.combiner.combine_family(group, candidates)

        if definition.is_family:
            # A family is off-theme only when none of its positions matched.
            off_theme = not any(r.matched_theme for r in resolved)
        else:
            off_theme = any(r.status == "missing" for r in resolved)
        if Dimension.THEME in definition.match_dimensions and off_theme:
            available = self.planner.off_theme(pool, group[0], schema, request)
            if available:
                slot_key = definition.slot_key if definition.is_family else group[0].key
                extra.append(theme_mismatch(slot_key, request.theme, available))
                self._log.info(
                    "theme_mismatch",
                    slot_key=slot_key,
                    requested=request.theme,
                    available=available,
                )
        return resolved, extra

    def _display_image(
        self, schema: TemplateSchema, slots: dict[str, ResolvedSlot]
    ) -> DisplayImage:
        thumb = slots.get(schema.thumbnail_slot) if schema.thumbnail_slot else None
        if thumb is not None and thumb.is_ready:
            return DisplayImage(source="slot", url=thumb.url, slot_key=thumb.slot_key)

        default = self.defaults.get(schema.template_type.value)
        if default is not None and (
            default.default_display_image_url or default.default_display_image_class
        ):
            return DisplayImage(
                source="template_default",
                url=default.default_display_image_url,
                asset_class=default.default_display_image_class,
            )
        return DisplayImage()
