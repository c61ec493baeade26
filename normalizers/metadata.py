"""Asset metadata normalizer: one raw catalog row -> one canonical tuple.

The catalog holds several generations of metadata for the same concepts:

  explicit     ``imageType`` / ``assetPurpose`` / ``videoType``
  asset_class  ``asset_class`` / ``audio_class`` / ``template_context.asset_purpose``
               (lullaby and name-video rows; class names map onto slot keys)
  legacy       ``section`` and ``category`` tables (early video uploads)
  prompt       images only, keyword inference over the generation prompt
  safe_zone    images only, reviewed safe-zone tags on legacy theme images

The same concept also hides behind several field names (``child_name`` vs
``childName``, ``targetLetter`` vs ``letter``).  The key tuples below are the
one place these alternatives are listed; the query planner builds its
catalog filters from the same tuples.
"""

from typing import Any

from app.utils.logging import get_logger
from models.catalog import AssetRecord, MediaType, NormalizedAsset

logger = get_logger("normalizers.metadata")

# Metadata key alternatives, most current first.
EXPLICIT_SLOT_KEYS: tuple[str, ...] = ("imageType", "assetPurpose", "videoType")
CLASS_KEYS: tuple[str, ...] = ("asset_class", "audio_class", "template_context.asset_purpose")
CHILD_KEYS: tuple[str, ...] = ("child_name", "childName")
LETTER_KEYS: tuple[str, ...] = ("targetLetter", "letter", "target_letter")
THEME_KEYS: tuple[str, ...] = ("theme", "child_theme", "childTheme")
TEMPLATE_KEYS: tuple[str, ...] = ("template", "templateType")

# Asset-class vocabulary -> slot key.  Unlisted class names are used verbatim.
ASSET_CLASS_TO_SLOT: dict[str, str] = {
    "lullaby_music": "backgroundMusic",
    "background_music": "backgroundMusic",
    "bedtime_greeting": "introAudio",
    "goodnight_message": "outroAudio",
    "bedtime_intro": "introImage",
    "bedtime_outro": "outroImage",
    "bedtime_scene": "bedtimeImage",
    "name_audio": "introAudio",
    "name_encouragement": "outroAudio",
    "name_intro": "introImage",
    "name_outro": "outroImage",
    "letter_background": "letterImage",
    "letter_audio": "letterAudio",
}

LEGACY_SECTION_TO_SLOT: dict[str, str] = {
    "introVideo": "introVideo",
    "intro": "introVideo",
    "intro2Video": "intro2Video",
    "intro2": "intro2Video",
    "search": "intro2Video",
    "happyDanceVideo": "happyDanceVideo",
    "dance": "happyDanceVideo",
    "endingVideo": "endingVideo",
}

LEGACY_CATEGORY_TO_SLOT: dict[str, str] = {
    "letter AND theme": "introVideo",
    "letter-and-theme": "introVideo",
    "search": "intro2Video",
    "intro2": "intro2Video",
    "dance": "happyDanceVideo",
}

# Checked in order; first keyword hit wins.
PROMPT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("signImage", ("street sign", "road sign", "sign")),
    ("bookImage", ("book", "cover", "reading")),
    ("groceryImage", ("grocery", "store", "cereal", "food")),
    ("endingImage", ("ending", "goodbye", "wave")),
)

# Reviewed legacy images without a slot field; first zone hit wins.
SAFE_ZONE_TO_SLOT: tuple[tuple[str, str], ...] = (
    ("left", "letterImage"),
    ("right", "letterImage"),
    ("intro", "introImage"),
    ("outro", "outroImage"),
)

_SAFE_ZONE_TOKENS: dict[str, str] = {
    "left_safe": "left",
    "right_safe": "right",
    "intro_safe": "intro",
    "outro_safe": "outro",
}


def get_path(metadata: dict[str, Any], path: str) -> Any:
    """Read a dotted *path* (``template_context.asset_purpose``) from *metadata*."""
    node: Any = metadata
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def first_text(metadata: dict[str, Any], paths: tuple[str, ...]) -> str | None:
    """First non-blank string value among *paths*; empty string counts as null."""
    for path in paths:
        value = get_path(metadata, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _explicit_slot_key(record: AssetRecord) -> tuple[str | None, str]:
    populated: list[tuple[str, str]] = []
    for key in EXPLICIT_SLOT_KEYS:
        value = first_text(record.metadata, (key,))
        if value is not None:
            populated.append((key, value))
    if len({value for _, value in populated}) > 1:
        logger.warning(
            "asset_explicit_slot_conflict",
            asset_id=record.id,
            fields={key: value for key, value in populated},
            chosen=populated[0][0],
        )
    if populated:
        value = populated[0][1]
        return ASSET_CLASS_TO_SLOT.get(value, value), "explicit"

    asset_class = first_text(record.metadata, CLASS_KEYS)
    if asset_class is not None:
        return ASSET_CLASS_TO_SLOT.get(asset_class, asset_class), "asset_class"
    return None, "unclassified"


def _prompt_slot_key(prompt: str) -> str | None:
    text = prompt.lower()
    for slot_key, keywords in PROMPT_KEYWORDS:
        if any(k in text for k in keywords):
            return slot_key
    return None


def infer_slot_key(record: AssetRecord) -> tuple[str | None, str]:
    """Return ``(slot_key, source_rule)`` following the precedence chain."""
    slot_key, rule = _explicit_slot_key(record)
    if slot_key is not None:
        return slot_key, rule

    section = first_text(record.metadata, ("section",))
    if section in LEGACY_SECTION_TO_SLOT:
        return LEGACY_SECTION_TO_SLOT[section], "legacy_section"

    category = first_text(record.metadata, ("category",))
    if category in LEGACY_CATEGORY_TO_SLOT:
        return LEGACY_CATEGORY_TO_SLOT[category], "legacy_category"

    if record.media_type == MediaType.IMAGE:
        prompt = first_text(record.metadata, ("prompt",))
        if prompt is not None:
            inferred = _prompt_slot_key(prompt)
            if inferred is not None:
                return inferred, "prompt"

        zones = _safe_zones(record.metadata)
        for zone, slot_key in SAFE_ZONE_TO_SLOT:
            if zone in zones:
                return slot_key, "safe_zone"

    return None, "unclassified"


def _safe_zones(metadata: dict[str, Any]) -> frozenset[str]:
    zones: set[str] = set()

    direct = first_text(metadata, ("safe_zone", "safeZone"))
    if direct in ("left", "right", "intro", "outro"):
        zones.add(direct)

    # Review output comes as a list, a bare string, or an arbitrary object.
    review = get_path(metadata, "review.safe_zone")
    if isinstance(review, str):
        blobs = [review]
    elif isinstance(review, (list, tuple)):
        blobs = [str(item) for item in review]
    elif isinstance(review, dict):
        blobs = [str(review)]
    else:
        blobs = []
    for blob in blobs:
        for token, zone in _SAFE_ZONE_TOKENS.items():
            if token in blob:
                zones.add(zone)
    return frozenset(zones)


def normalize_asset(record: AssetRecord) -> NormalizedAsset:
    """Translate one :class:`AssetRecord` into a :class:`NormalizedAsset`.

    Unclassified assets (``slot_key is None``) are returned too; the caller
    reports them instead of dropping them.
    """
    slot_key, rule = infer_slot_key(record)
    letter = first_text(record.metadata, LETTER_KEYS)
    theme = first_text(record.metadata, THEME_KEYS)
    if theme is None and record.theme and record.theme.strip():
        theme = record.theme.strip()

    normalized = NormalizedAsset(
        asset_id=record.id,
        media_type=record.media_type,
        status=record.status,
        url=record.file_url,
        created_at=record.created_at,
        slot_key=slot_key,
        letter=letter.upper() if letter else None,
        child_name=first_text(record.metadata, CHILD_KEYS),
        theme=theme,
        template=(first_text(record.metadata, TEMPLATE_KEYS) or "").lower() or None,
        safe_zones=_safe_zones(record.metadata),
        source_rule=rule,
    )
    if slot_key is None:
        logger.info("asset_unclassified", asset_id=record.id, media_type=record.media_type.value)
    return normalized
