"""Unit tests for the asset metadata normalizer.

Covers:
  1. Explicit slot fields (imageType / assetPurpose / videoType) and conflicts.
  2. asset_class generation, including the nested template_context path.
  3. Legacy section and category tables.
  4. Prompt keyword inference (images only, keyword order).
  5. Safe-zone tags on legacy theme images.
  6. Field-name alternatives, empty-string-as-null, theme column fallback.
  7. Unclassified assets.
"""

from datetime import datetime, timezone

from models.catalog import AssetRecord
from normalizers.metadata import get_path, infer_slot_key, normalize_asset


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _record(media_type: str = "image", theme: str | None = None, **metadata) -> AssetRecord:
    return AssetRecord(
        id="asset-1",
        media_type=media_type,
        status="approved",
        file_url="https://cdn.example/asset-1",
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        metadata=metadata,
        theme=theme,
    )


# ---------------------------------------------------------------------------
# Test 1 — Explicit fields
# ---------------------------------------------------------------------------


def test_explicit_image_type() -> None:
    assert infer_slot_key(_record(imageType="titleCard")) == ("titleCard", "explicit")


def test_explicit_asset_purpose_and_video_type() -> None:
    assert infer_slot_key(_record("audio", assetPurpose="signAudio")) == ("signAudio", "explicit")
    assert infer_slot_key(_record("video", videoType="endingVideo")) == ("endingVideo", "explicit")


def test_explicit_conflict_first_field_wins() -> None:
    """imageType outranks assetPurpose when both are populated and disagree."""
    record = _record(imageType="signImage", assetPurpose="bookImage")
    assert infer_slot_key(record) == ("signImage", "explicit")


def test_explicit_field_beats_legacy_section() -> None:
    record = _record("video", videoType="intro2Video", section="dance")
    assert infer_slot_key(record) == ("intro2Video", "explicit")


# ---------------------------------------------------------------------------
# Test 2 — asset_class generation
# ---------------------------------------------------------------------------


def test_asset_class_maps_to_slot_key() -> None:
    assert infer_slot_key(_record("audio", asset_class="bedtime_greeting")) == (
        "introAudio",
        "asset_class",
    )
    assert infer_slot_key(_record("audio", audio_class="lullaby_music")) == (
        "backgroundMusic",
        "asset_class",
    )


def test_nested_template_context_asset_purpose() -> None:
    record = _record(template_context={"asset_purpose": "letter_background"})
    assert infer_slot_key(record) == ("letterImage", "asset_class")


def test_unknown_asset_class_used_verbatim() -> None:
    assert infer_slot_key(_record(asset_class="outroImage")) == ("outroImage", "asset_class")


# ---------------------------------------------------------------------------
# Test 3 — Legacy section / category
# ---------------------------------------------------------------------------


def test_legacy_section_table() -> None:
    assert infer_slot_key(_record("video", section="dance")) == ("happyDanceVideo", "legacy_section")
    assert infer_slot_key(_record("video", section="intro")) == ("introVideo", "legacy_section")
    assert infer_slot_key(_record("video", section="search")) == ("intro2Video", "legacy_section")
    assert infer_slot_key(_record("video", section="endingVideo")) == ("endingVideo", "legacy_section")


def test_legacy_category_table() -> None:
    assert infer_slot_key(_record("video", category="letter AND theme")) == (
        "introVideo",
        "legacy_category",
    )
    assert infer_slot_key(_record("video", category="dance")) == (
        "happyDanceVideo",
        "legacy_category",
    )


def test_unknown_section_falls_through_to_category() -> None:
    record = _record("video", section="outtakes", category="intro2")
    assert infer_slot_key(record) == ("intro2Video", "legacy_category")


# ---------------------------------------------------------------------------
# Test 4 — Prompt keyword inference
# ---------------------------------------------------------------------------


def test_prompt_keywords() -> None:
    assert infer_slot_key(_record(prompt="A red road sign with the letter A"))[0] == "signImage"
    assert infer_slot_key(_record(prompt="A child reading under a tree"))[0] == "bookImage"
    assert infer_slot_key(_record(prompt="Cereal boxes on a shelf"))[0] == "groceryImage"
    assert infer_slot_key(_record(prompt="Friends waving goodbye"))[0] == "endingImage"


def test_prompt_keyword_order_book_before_grocery() -> None:
    """A prompt hitting two keyword groups resolves to the earlier group."""
    assert infer_slot_key(_record(prompt="A picture book in a grocery store")) == (
        "bookImage",
        "prompt",
    )


def test_prompt_ignored_for_non_images() -> None:
    assert infer_slot_key(_record("video", prompt="A street sign")) == (None, "unclassified")


# ---------------------------------------------------------------------------
# Test 5 — Safe-zone tags
# ---------------------------------------------------------------------------


def test_review_safe_zone_list() -> None:
    asset = normalize_asset(_record(review={"safe_zone": ["left_safe", "center_busy"]}))
    assert asset.slot_key == "letterImage"
    assert asset.source_rule == "safe_zone"
    assert asset.safe_zones == frozenset({"left"})


def test_review_safe_zone_string_and_object() -> None:
    assert normalize_asset(_record(review={"safe_zone": "right_safe"})).safe_zones == {"right"}
    nested = _record(review={"safe_zone": {"zones": ["left_safe", "right_safe"]}})
    assert normalize_asset(nested).safe_zones == {"left", "right"}


def test_intro_safe_zone_maps_to_intro_image() -> None:
    assert infer_slot_key(_record(review={"safe_zone": "intro_safe"})) == ("introImage", "safe_zone")


def test_prompt_outranks_safe_zone() -> None:
    record = _record(prompt="an open book", review={"safe_zone": ["left_safe"]})
    assert infer_slot_key(record) == ("bookImage", "prompt")


def test_direct_safe_zone_field_on_class_asset() -> None:
    asset = normalize_asset(_record(asset_class="letter_background", safe_zone="right"))
    assert asset.slot_key == "letterImage"
    assert asset.source_rule == "asset_class"
    assert asset.safe_zones == {"right"}


# ---------------------------------------------------------------------------
# Test 6 — Field alternatives and nulls
# ---------------------------------------------------------------------------


def test_empty_string_is_null_and_alternatives_are_read() -> None:
    asset = normalize_asset(
        _record(imageType="titleCard", child_name="", childName="Andrew", letter="a")
    )
    assert asset.child_name == "Andrew"
    assert asset.letter == "A"


def test_empty_strings_never_become_values() -> None:
    asset = normalize_asset(_record(imageType="titleCard", child_name="", targetLetter="", theme=""))
    assert asset.child_name is None
    assert asset.letter is None
    assert asset.theme is None


def test_theme_column_fallback_and_metadata_precedence() -> None:
    assert normalize_asset(_record(imageType="introImage", theme="Dogs")).theme == "Dogs"
    record = _record(theme="Dogs", imageType="introImage", child_theme="Cats")
    assert normalize_asset(record).theme == "Cats"


def test_template_lower_cased_from_either_key() -> None:
    assert normalize_asset(_record(imageType="signImage", template="Letter-Hunt")).template == "letter-hunt"
    assert normalize_asset(_record(imageType="signImage", templateType="lullaby")).template == "lullaby"


def test_get_path_reads_dotted_paths() -> None:
    metadata = {"template_context": {"asset_purpose": "name_audio"}, "flat": "x"}
    assert get_path(metadata, "template_context.asset_purpose") == "name_audio"
    assert get_path(metadata, "flat.deeper") is None
    assert get_path(metadata, "missing") is None


# ---------------------------------------------------------------------------
# Test 7 — Unclassified
# ---------------------------------------------------------------------------


def test_unclassified_asset_is_returned_not_dropped() -> None:
    asset = normalize_asset(_record("audio", description="mystery clip"))
    assert asset.slot_key is None
    assert asset.source_rule == "unclassified"
    assert asset.asset_id == "asset-1"
