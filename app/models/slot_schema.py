"""Slot schema registry: which slots each template type declares.

A :class:`TemplateSchema` lists :class:`SlotDefinition` entries in render
order.  Some definitions are *families* that expand per request:

  count                 ``bedtimeImage[0]`` .. ``bedtimeImage[22]``
  name_positions        ``letterImage[i]`` for every letter of the child's
                        name, duplicates included
  unique_name_letters   ``letterAudio[N]`` for every distinct name letter

:meth:`TemplateSchema.declared_slots` performs that expansion, so the
resolver always works with a flat, ordered list of concrete slots.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from models.catalog import MediaType
from models.request import InvalidTemplateRequest, TemplateRequest


class TemplateType(str, Enum):
    LETTER_HUNT = "letter-hunt"
    LULLABY     = "lullaby"
    NAME_VIDEO  = "name-video"


class Dimension(str, Enum):
    CHILD  = "child"
    LETTER = "letter"
    THEME  = "theme"


class Expansion(str, Enum):
    NONE                = "none"
    COUNT               = "count"
    NAME_POSITIONS      = "name_positions"
    UNIQUE_NAME_LETTERS = "unique_name_letters"


class SlotDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    slot_key: str
    media_type: MediaType
    required: bool = False
    match_dimensions: frozenset[Dimension] = frozenset()

    letter_bound: bool = False
    """Match on the letter tier only and ignore theme (ending videos)."""

    expand: Expansion = Expansion.NONE
    count: int = Field(default=1, ge=1)

    shared_across_templates: bool = False
    """Candidates may come from any template (generic letter audio, music)."""

    catalog_classes: tuple[str, ...] = ()
    """Class values that identify this slot in shared catalog queries."""

    safe_zone_alternation: bool = False
    """Family positions alternate left-safe / right-safe images."""

    legacy_safe_zone_fallback: bool = False
    """Template-less reviewed images (``intro_safe`` / ``outro_safe``) may fill
    this slot, ranked after class-tagged images of the same tier."""

    @property
    def personal(self) -> bool:
        """Child-only slots accept child-specific assets exclusively."""
        return self.match_dimensions == frozenset({Dimension.CHILD})

    @property
    def is_family(self) -> bool:
        return self.expand != Expansion.NONE


class DeclaredSlot(BaseModel):
    """One concrete slot for one request."""

    model_config = ConfigDict(frozen=True)

    key: str
    definition: SlotDefinition
    position: int | None = None
    letter: str | None = None
    """Letter the slot's assets must carry (request letter or family letter)."""


class ReadinessContract(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_completion_percent: int = Field(ge=0, le=100)
    require_letter_coverage: bool = False


class TemplateSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    template_type: TemplateType
    aliases: tuple[str, ...]
    """Values of ``metadata.template`` that belong to this template."""

    slots: tuple[SlotDefinition, ...]
    readiness: ReadinessContract
    default_theme: str | None = None
    thumbnail_slot: str | None = None

    @property
    def needs_letter(self) -> bool:
        return any(
            Dimension.LETTER in s.match_dimensions and s.expand == Expansion.NONE
            for s in self.slots
        )

    @property
    def needs_theme(self) -> bool:
        return any(Dimension.THEME in s.match_dimensions for s in self.slots)

    @property
    def gating_slots(self) -> tuple[str, ...]:
        return tuple(s.slot_key for s in self.slots if s.required and not s.is_family)

    def validate_request(self, request: TemplateRequest) -> TemplateRequest:
        """Check letter/theme requirements; fill the default theme.

        Raises:
            InvalidTemplateRequest: If a slot needs a letter or theme the
                request does not carry (and no default exists).
        """
        if self.needs_letter and request.target_letter is None:
            raise InvalidTemplateRequest(
                f"ERROR: template {self.template_type.value} requires target_letter"
            )
        if self.needs_theme and request.theme is None:
            if self.default_theme is None:
                raise InvalidTemplateRequest(
                    f"ERROR: template {self.template_type.value} requires theme"
                )
            request = request.model_copy(update={"theme": self.default_theme})
        return request

    def declared_slots(self, request: TemplateRequest) -> list[DeclaredSlot]:
        """Expand families and bind letters for *request*."""
        plain_letter = request.target_letter if self.needs_letter else None
        declared: list[DeclaredSlot] = []
        for slot in self.slots:
            if slot.expand == Expansion.NONE:
                declared.append(DeclaredSlot(key=slot.slot_key, definition=slot, letter=plain_letter))
            elif slot.expand == Expansion.COUNT:
                declared.extend(
                    DeclaredSlot(key=f"{slot.slot_key}[{i}]", definition=slot, position=i)
                    for i in range(slot.count)
                )
            elif slot.expand == Expansion.NAME_POSITIONS:
                declared.extend(
                    DeclaredSlot(key=f"{slot.slot_key}[{i}]", definition=slot, position=i)
                    for i in range(len(request.name_letters))
                )
            else:
                declared.extend(
                    DeclaredSlot(
                        key=f"{slot.slot_key}[{letter}]",
                        definition=slot,
                        position=i,
                        letter=letter,
                    )
                    for i, letter in enumerate(request.unique_name_letters)
                )
        return declared


class SlotSchemaRegistry:
    """Template type -> :class:`TemplateSchema`, with alias lookup."""

    def __init__(self, *schemas: TemplateSchema) -> None:
        self._schemas: dict[str, TemplateSchema] = {}
        for schema in schemas:
            for name in (schema.template_type.value, *schema.aliases):
                self._schemas[name.lower()] = schema

    def get(self, template_type: str) -> TemplateSchema:
        """Return the schema for *template_type* (or one of its aliases).

        Raises:
            InvalidTemplateRequest: If the template type is not registered.
        """
        try:
            return self._schemas[template_type.lower()]
        except KeyError:
            raise InvalidTemplateRequest(
                f"ERROR: unknown template type {template_type!r}; "
                f"known: {self.template_types()}"
            ) from None

    def template_types(self) -> list[str]:
        return sorted({s.template_type.value for s in self._schemas.values()})


# ---------------------------------------------------------------------------
# Built-in templates
# ---------------------------------------------------------------------------

_IMAGE, _VIDEO, _AUDIO = MediaType.IMAGE, MediaType.VIDEO, MediaType.AUDIO
_CHILD = frozenset({Dimension.CHILD})
_LETTER = frozenset({Dimension.LETTER})
_THEME = frozenset({Dimension.THEME})
_LETTER_THEME = frozenset({Dimension.LETTER, Dimension.THEME})

_BACKGROUND_MUSIC = SlotDefinition(
    slot_key="backgroundMusic",
    media_type=_AUDIO,
    shared_across_templates=True,
    catalog_classes=("backgroundMusic", "lullaby_music", "background_music"),
)

LETTER_HUNT = TemplateSchema(
    template_type=TemplateType.LETTER_HUNT,
    aliases=("letter-hunt", "letterhunt"),
    default_theme="adventure",
    thumbnail_slot="titleCard",
    readiness=ReadinessContract(min_completion_percent=50),
    slots=(
        SlotDefinition(slot_key="titleCard", media_type=_IMAGE, required=True, match_dimensions=_CHILD),
        SlotDefinition(slot_key="titleAudio", media_type=_AUDIO, match_dimensions=_CHILD),
        SlotDefinition(slot_key="introVideo", media_type=_VIDEO, match_dimensions=_THEME),
        SlotDefinition(slot_key="introAudio", media_type=_AUDIO, match_dimensions=_LETTER),
        SlotDefinition(slot_key="intro2Video", media_type=_VIDEO, match_dimensions=_THEME),
        SlotDefinition(slot_key="intro2Audio", media_type=_AUDIO, match_dimensions=_LETTER),
        SlotDefinition(slot_key="signImage", media_type=_IMAGE, match_dimensions=_LETTER_THEME),
        SlotDefinition(slot_key="signAudio", media_type=_AUDIO),
        SlotDefinition(slot_key="bookImage", media_type=_IMAGE, match_dimensions=_LETTER_THEME),
        SlotDefinition(slot_key="bookAudio", media_type=_AUDIO),
        SlotDefinition(slot_key="groceryImage", media_type=_IMAGE, match_dimensions=_LETTER_THEME),
        SlotDefinition(slot_key="groceryAudio", media_type=_AUDIO),
        SlotDefinition(slot_key="happyDanceVideo", media_type=_VIDEO, match_dimensions=_THEME),
        SlotDefinition(slot_key="happyDanceAudio", media_type=_AUDIO),
        SlotDefinition(slot_key="endingImage", media_type=_IMAGE, match_dimensions=_LETTER_THEME),
        SlotDefinition(
            slot_key="endingVideo", media_type=_VIDEO, match_dimensions=_LETTER, letter_bound=True
        ),
        SlotDefinition(slot_key="endingAudio", media_type=_AUDIO, match_dimensions=_CHILD),
        SlotDefinition(slot_key="backgroundMusic", media_type=_AUDIO),
    ),
)

LULLABY = TemplateSchema(
    template_type=TemplateType.LULLABY,
    aliases=("lullaby",),
    thumbnail_slot="introImage",
    readiness=ReadinessContract(min_completion_percent=60),
    slots=(
        _BACKGROUND_MUSIC.model_copy(update={"required": True}),
        SlotDefinition(slot_key="introImage", media_type=_IMAGE, match_dimensions=_THEME),
        SlotDefinition(slot_key="outroImage", media_type=_IMAGE, match_dimensions=_THEME),
        SlotDefinition(slot_key="introAudio", media_type=_AUDIO, required=True, match_dimensions=_CHILD),
        SlotDefinition(slot_key="outroAudio", media_type=_AUDIO, match_dimensions=_CHILD),
        SlotDefinition(
            slot_key="bedtimeImage",
            media_type=_IMAGE,
            match_dimensions=_THEME,
            expand=Expansion.COUNT,
            count=23,
        ),
    ),
)

NAME_VIDEO = TemplateSchema(
    template_type=TemplateType.NAME_VIDEO,
    aliases=("name-video", "namevideo"),
    thumbnail_slot="introImage",
    readiness=ReadinessContract(min_completion_percent=50, require_letter_coverage=True),
    slots=(
        _BACKGROUND_MUSIC.model_copy(update={"required": True}),
        SlotDefinition(
            slot_key="introImage",
            media_type=_IMAGE,
            match_dimensions=_THEME,
            legacy_safe_zone_fallback=True,
        ),
        SlotDefinition(
            slot_key="outroImage",
            media_type=_IMAGE,
            match_dimensions=_THEME,
            legacy_safe_zone_fallback=True,
        ),
        SlotDefinition(slot_key="introAudio", media_type=_AUDIO, required=True, match_dimensions=_CHILD),
        SlotDefinition(
            slot_key="letterImage",
            media_type=_IMAGE,
            match_dimensions=_THEME,
            expand=Expansion.NAME_POSITIONS,
            safe_zone_alternation=True,
            catalog_classes=("letter_background",),
        ),
        SlotDefinition(
            slot_key="letterAudio",
            media_type=_AUDIO,
            match_dimensions=_LETTER,
            expand=Expansion.UNIQUE_NAME_LETTERS,
            shared_across_templates=True,
            catalog_classes=("letterAudio", "letter_audio"),
        ),
    ),
)

DEFAULT_REGISTRY = SlotSchemaRegistry(LETTER_HUNT, LULLABY, NAME_VIDEO)
