"""Candidate query planner.

For one request the planner issues a fixed, ordered list of catalog queries,
normalizes every returned row once, and then classifies each normalized
asset against each declared slot into a specificity tier:

  1  child+letter   asset child == request child, asset letter == slot letter
  2  letter         asset letter == slot letter, no child
  3  theme          asset theme ~ request theme, no letter, no child
  4  generic        no child, no letter, no theme

Catalog filters are coarse (theme equality needs the synonym table, which the
catalog does not have); the tier rules in :meth:`classify` are the authority.
"""

from pydantic import BaseModel, ConfigDict, Field

from app.models.slot_schema import DeclaredSlot, Dimension, TemplateSchema
from app.utils.logging import get_logger
from catalog.base import THEME_COLUMN, AssetCatalog, CatalogQuery, FieldMatch
from models.catalog import ELIGIBLE_STATUSES, AssetRecord, AssetStatus, MediaType, NormalizedAsset
from models.diagnostics import UnclassifiedAsset
from models.request import TemplateRequest
from models.resolution import Tier
from normalizers.metadata import (
    CHILD_KEYS,
    CLASS_KEYS,
    EXPLICIT_SLOT_KEYS,
    LETTER_KEYS,
    THEME_KEYS,
    normalize_asset,
)
from normalizers.theme import ThemeNormalizer

logger = get_logger("resolvers.planner")

_THEME_PATHS: tuple[str, ...] = (*THEME_KEYS, THEME_COLUMN)
_SAFE_ZONE_PATHS: tuple[str, ...] = ("safe_zone", "safeZone", "review.safe_zone")


class Candidate(BaseModel):
    """A normalized asset accepted for one declared slot."""

    model_config = ConfigDict(frozen=True)

    asset: NormalizedAsset
    tier: Tier
    theme_match: bool


class CandidatePool(BaseModel):
    """Every eligible normalized asset gathered for one resolution run."""

    assets: dict[str, NormalizedAsset] = Field(default_factory=dict)
    unclassified: list[UnclassifiedAsset] = Field(default_factory=list)

    def for_slot_key(self, slot_key: str, media_type: MediaType) -> list[NormalizedAsset]:
        return [
            a for a in self.assets.values()
            if a.slot_key == slot_key and a.media_type == media_type
        ]


class CandidateQueryPlanner:
    """Build tier queries, gather a candidate pool and classify candidates.

    Args:
        themes: Theme normalizer used for every theme comparison.
    """

    def __init__(self, themes: ThemeNormalizer) -> None:
        self.themes = themes

    # ------------------------------------------------------------------
    # Query planning
    # ------------------------------------------------------------------

    def queries(
        self,
        schema: TemplateSchema,
        request: TemplateRequest,
        declared: list[DeclaredSlot],
    ) -> list[CatalogQuery]:
        """Return the ordered catalog queries for *request*."""
        statuses = ELIGIBLE_STATUSES
        templates = schema.aliases
        not_child = (CHILD_KEYS,)

        child_matches = [FieldMatch(paths=CHILD_KEYS, values=(request.child_name,))]
        if schema.needs_letter and request.target_letter:
            child_matches.append(FieldMatch(paths=LETTER_KEYS, values=(request.target_letter,)))
        planned = [
            CatalogQuery(
                label="tier:child",
                statuses=statuses,
                templates=templates,
                matches=tuple(child_matches),
            )
        ]

        letters = sorted({d.letter for d in declared if d.letter is not None})
        if letters:
            planned.append(
                CatalogQuery(
                    label="tier:letter",
                    statuses=statuses,
                    templates=templates,
                    matches=(FieldMatch(paths=LETTER_KEYS, values=tuple(letters)),),
                    empty=not_child,
                )
            )

        if schema.needs_theme and request.theme:
            planned.append(
                CatalogQuery(
                    label="tier:theme",
                    statuses=statuses,
                    templates=templates,
                    present=(_THEME_PATHS,),
                    empty=(CHILD_KEYS, LETTER_KEYS),
                )
            )

        planned.append(
            CatalogQuery(
                label="tier:generic",
                statuses=statuses,
                templates=templates,
                empty=(CHILD_KEYS, LETTER_KEYS, _THEME_PATHS),
            )
        )

        shared_classes = sorted(
            {c for s in schema.slots if s.shared_across_templates for c in s.catalog_classes}
        )
        if shared_classes:
            planned.append(
                CatalogQuery(
                    label="shared",
                    statuses=statuses,
                    matches=(
                        FieldMatch(
                            paths=(*EXPLICIT_SLOT_KEYS, *CLASS_KEYS),
                            values=tuple(shared_classes),
                        ),
                    ),
                    empty=not_child,
                )
            )

        if request.theme and any(
            s.safe_zone_alternation or s.legacy_safe_zone_fallback for s in schema.slots
        ):
            planned.append(
                CatalogQuery(
                    label="legacy:safe_zone",
                    statuses=statuses,
                    media_types=frozenset({MediaType.IMAGE}),
                    present=(_THEME_PATHS, _SAFE_ZONE_PATHS),
                    empty=(CHILD_KEYS, LETTER_KEYS),
                )
            )
        return planned

    # ------------------------------------------------------------------
    # Gathering
    # ------------------------------------------------------------------

    def gather(self, catalog: AssetCatalog, queries: list[CatalogQuery]) -> CandidatePool:
        """Run *queries* and merge the rows into one deduplicated pool.

        The catalog may change between queries.  A row returned with an
        ineligible status by any query is dropped; a row seen both approved
        and pending is kept as pending.
        """
        snapshots: dict[str, list[AssetRecord]] = {}
        for query in queries:
            for record in catalog.query(query):
                snapshots.setdefault(record.id, []).append(record)

        pool = CandidatePool()
        for asset_id in sorted(snapshots):
            seen = snapshots[asset_id]
            statuses = {r.status for r in seen}
            record = seen[0]
            # Ineligible rows only arrive from catalogs that ignore the status filter.
            if len(statuses) > 1 or not statuses <= ELIGIBLE_STATUSES:
                logger.info(
                    "candidate_changed_between_queries",
                    asset_id=asset_id,
                    statuses=sorted(s.value for s in statuses),
                )
                if not statuses <= ELIGIBLE_STATUSES:
                    continue
                record = record.model_copy(update={"status": AssetStatus.PENDING})

            asset = normalize_asset(record)
            if asset.slot_key is None:
                pool.unclassified.append(
                    UnclassifiedAsset(
                        asset_id=asset.asset_id,
                        media_type=asset.media_type.value,
                        message=f"asset {asset.asset_id} matched no slot inference rule",
                    )
                )
                continue
            pool.assets[asset_id] = asset
        return pool

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(
        self,
        asset: NormalizedAsset,
        slot: DeclaredSlot,
        schema: TemplateSchema,
        request: TemplateRequest,
    ) -> Tier | None:
        """Return the tier *asset* occupies for *slot*, or ``None`` if rejected."""
        definition = slot.definition
        if asset.slot_key != definition.slot_key or asset.media_type != definition.media_type:
            return None
        if not self._template_allowed(asset, slot, schema):
            return None

        dims = definition.match_dimensions

        if asset.child_name is not None:
            if definition.letter_bound:
                return None
            if asset.child_name.casefold() != request.child_name.casefold():
                return None
            if asset.letter != slot.letter:
                return None
            return Tier.CHILD_LETTER

        if definition.personal:
            return None

        if asset.letter is not None:
            # Letter-tagged assets fit any slot bound to the same letter.
            return Tier.LETTER if slot.letter is not None and asset.letter == slot.letter else None

        if definition.letter_bound:
            return None

        if asset.theme is not None:
            if Dimension.THEME not in dims or Dimension.LETTER in dims:
                return None
            return Tier.THEME if self.themes.equal(asset.theme, request.theme) else None

        if Dimension.CHILD in dims or Dimension.LETTER in dims:
            return None
        return Tier.GENERIC

    def candidates(
        self,
        pool: CandidatePool,
        slot: DeclaredSlot,
        schema: TemplateSchema,
        request: TemplateRequest,
    ) -> list[Candidate]:
        """All pool assets accepted for *slot*, in pool (asset id) order."""
        found: list[Candidate] = []
        for asset in pool.for_slot_key(slot.definition.slot_key, slot.definition.media_type):
            tier = self.classify(asset, slot, schema, request)
            if tier is None:
                continue
            found.append(
                Candidate(
                    asset=asset,
                    tier=tier,
                    theme_match=self.themes.equal(asset.theme, request.theme),
                )
            )
        return found

    def off_theme(
        self,
        pool: CandidatePool,
        slot: DeclaredSlot,
        schema: TemplateSchema,
        request: TemplateRequest,
    ) -> list[str]:
        """Sorted distinct normalized themes of same-key assets not matching the request."""
        found: set[str] = set()
        for asset in pool.for_slot_key(slot.definition.slot_key, slot.definition.media_type):
            if not self._template_allowed(asset, slot, schema):
                continue
            canon = self.themes.normalize(asset.theme)
            if canon is not None and not self.themes.equal(asset.theme, request.theme):
                found.add(canon)
        return sorted(found)

    @staticmethod
    def _template_allowed(
        asset: NormalizedAsset, slot: DeclaredSlot, schema: TemplateSchema
    ) -> bool:
        definition = slot.definition
        if definition.shared_across_templates:
            return True
        if asset.source_rule == "safe_zone" and (
            definition.safe_zone_alternation or definition.legacy_safe_zone_fallback
        ):
            return True
        return asset.template is not None and asset.template in schema.aliases
