"""End-to-end subprocess tests for scripts/resolve_slots.py.

Covers the summary line, the output envelope contract, --request vs inline
flags, the SLOT_RESOLVER_CATALOG default, --strict mode, and every error exit
code (2 for arguments / missing files, 1 for invalid input).
"""

import json
import os
import subprocess
import sys
from pathlib import Path

import jsonschema

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parents[2]
SCRIPT = ROOT / "scripts/resolve_slots.py"
SCHEMA_OUT = json.loads(
    (ROOT / "contracts/schemas/ResolutionResult.v1.json").read_text(encoding="utf-8")
)

_INLINE = ("--child", "Andrew", "--template", "letter-hunt", "--letter", "A", "--theme", "dogs")


def _asset(asset_id: str, media_type: str, **metadata) -> dict:
    theme = metadata.pop("theme_column", None)
    row = {
        "id": asset_id,
        "media_type": media_type,
        "status": "approved",
        "file_url": f"https://cdn.example/{asset_id}",
        "created_at": "2024-01-01T00:00:00Z",
        "metadata": {"template": "letter-hunt", **metadata},
    }
    if theme is not None:
        row["theme"] = theme
    return row


def _small_catalog() -> dict:
    """Two ready slots out of eighteen."""
    return {"assets": [
        _asset("tc", "image", imageType="titleCard", child_name="Andrew", targetLetter="A"),
        _asset("intro", "video", section="introVideo", theme_column="Dog"),
    ]}


def _ready_catalog() -> dict:
    """Nine ready slots out of eighteen, titleCard included (50%)."""
    assets = _small_catalog()["assets"] + [
        _asset("title-audio", "audio", assetPurpose="titleAudio", childName="Andrew",
               targetLetter="A"),
        _asset("search", "video", videoType="intro2Video", theme="puppies"),
        _asset("sign", "image", imageType="signImage", letter="A"),
    ]
    for purpose in ("signAudio", "bookAudio", "groceryAudio", "happyDanceAudio"):
        assets.append(_asset(purpose.lower(), "audio", assetPurpose=purpose))
    return {"assets": assets}


def _write_json(path: Path, payload: dict) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _run(*args: str, env_extra: dict | None = None) -> subprocess.CompletedProcess:
    env = {k: v for k, v in os.environ.items() if not k.startswith("SLOT_RESOLVER_")}
    env.update(env_extra or {})
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        env=env,
        capture_output=True,
        text=True,
    )


# ---------------------------------------------------------------------------
# Test 1 — Summary line and envelope
# ---------------------------------------------------------------------------


def test_ok_summary_for_partial_template(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    out = tmp_path / "out" / "resolution.json"

    result = _run("--catalog", str(catalog), *_INLINE, "--output", str(out))

    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == (
        "OK: 18 slots; 2 ready; completion 11%; can_generate=false"
    )
    assert out.exists()


def test_output_envelope_conforms_to_contract(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    out = tmp_path / "resolution.json"
    _run("--catalog", str(catalog), *_INLINE, "--output", str(out))

    envelope = json.loads(out.read_text(encoding="utf-8"))
    jsonschema.validate(instance=envelope, schema=SCHEMA_OUT)
    assert envelope["schema_id"] == "ResolutionResult"
    assert envelope["producer"] == "slots/resolve_slots.py"
    assert envelope["generated_at"] == "1970-01-01T00:00:00Z"
    assert envelope["slots"]["introVideo"]["asset_id"] == "intro"
    assert envelope["slots"]["introVideo"]["source_tier"] == 3
    assert envelope["slots"]["titleCard"]["status"] == "ready"
    assert envelope["display_image"]["slot_key"] == "titleCard"


def test_request_file_matches_inline_flags(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    request = _write_json(tmp_path / "request.json", {
        "child_name": "Andrew", "template_type": "letter-hunt",
        "target_letter": "A", "theme": "dogs",
    })
    inline_out = tmp_path / "inline.json"
    file_out = tmp_path / "file.json"

    assert _run("--catalog", str(catalog), *_INLINE, "--output", str(inline_out)).returncode == 0
    assert _run("--catalog", str(catalog), "--request", str(request),
                "--output", str(file_out)).returncode == 0
    assert inline_out.read_bytes() == file_out.read_bytes()


def test_catalog_defaults_to_env_var(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    result = _run(*_INLINE, "--output", str(tmp_path / "o.json"),
                  env_extra={"SLOT_RESOLVER_CATALOG": str(catalog)})
    assert result.returncode == 0, result.stderr


# ---------------------------------------------------------------------------
# Test 2 — Strict mode
# ---------------------------------------------------------------------------


def test_strict_not_ready_exits_1_with_reasons(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    result = _run("--catalog", str(catalog), *_INLINE,
                  "--output", str(tmp_path / "o.json"), "--strict")

    assert result.returncode == 1
    assert result.stdout.startswith("OK: 18 slots; 2 ready")
    assert "ERROR: insufficient_completion:" in result.stderr


def test_strict_ready_exits_0(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _ready_catalog())
    result = _run("--catalog", str(catalog), *_INLINE,
                  "--output", str(tmp_path / "o.json"), "--strict")

    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == (
        "OK: 18 slots; 9 ready; completion 50%; can_generate=true"
    )


# ---------------------------------------------------------------------------
# Test 3 — Argument and file errors (exit 2)
# ---------------------------------------------------------------------------


def test_missing_catalog_file_exits_2(tmp_path: Path) -> None:
    result = _run("--catalog", str(tmp_path / "nope.json"), *_INLINE,
                  "--output", str(tmp_path / "o.json"))
    assert result.returncode == 2
    assert "ERROR: catalog file not found" in result.stderr


def test_no_catalog_anywhere_exits_2(tmp_path: Path) -> None:
    result = _run(*_INLINE, "--output", str(tmp_path / "o.json"))
    assert result.returncode == 2
    assert "ERROR: no catalog given" in result.stderr


def test_missing_request_file_exits_2(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    result = _run("--catalog", str(catalog), "--request", str(tmp_path / "r.json"),
                  "--output", str(tmp_path / "o.json"))
    assert result.returncode == 2
    assert "ERROR: request file not found" in result.stderr


def test_request_or_child_template_required(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    result = _run("--catalog", str(catalog), "--child", "Andrew",
                  "--output", str(tmp_path / "o.json"))
    assert result.returncode == 2


# ---------------------------------------------------------------------------
# Test 4 — Invalid input (exit 1)
# ---------------------------------------------------------------------------


def test_unknown_template_exits_1(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    out = tmp_path / "o.json"
    result = _run("--catalog", str(catalog), "--child", "Andrew", "--template", "story-time",
                  "--output", str(out))
    assert result.returncode == 1
    assert "ERROR: unknown template type" in result.stderr
    assert not out.exists()


def test_letter_hunt_without_letter_exits_1(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    result = _run("--catalog", str(catalog), "--child", "Andrew", "--template", "letter-hunt",
                  "--output", str(tmp_path / "o.json"))
    assert result.returncode == 1
    assert "requires target_letter" in result.stderr


def test_invalid_catalog_snapshot_exits_1(tmp_path: Path) -> None:
    bad = {"assets": [{"id": "x", "media_type": "image", "status": "deleted"}]}
    catalog = _write_json(tmp_path / "catalog.json", bad)
    result = _run("--catalog", str(catalog), *_INLINE, "--output", str(tmp_path / "o.json"))
    assert result.returncode == 1
    assert "does not conform to CatalogSnapshot.v1.json" in result.stderr


def test_unparseable_catalog_exits_1(tmp_path: Path) -> None:
    catalog = tmp_path / "catalog.json"
    catalog.write_text("{not json", encoding="utf-8")
    result = _run("--catalog", str(catalog), *_INLINE, "--output", str(tmp_path / "o.json"))
    assert result.returncode == 1
    assert "ERROR: failed to load catalog" in result.stderr


def test_request_with_unknown_field_exits_1(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    request = _write_json(tmp_path / "request.json", {
        "child_name": "Andrew", "template_type": "letter-hunt", "colour": "blue",
    })
    result = _run("--catalog", str(catalog), "--request", str(request),
                  "--output", str(tmp_path / "o.json"))
    assert result.returncode == 1
    assert "does not conform to TemplateRequest.v1.json" in result.stderr


def test_multi_character_letter_exits_1(tmp_path: Path) -> None:
    catalog = _write_json(tmp_path / "catalog.json", _small_catalog())
    result = _run("--catalog", str(catalog), "--child", "Andrew", "--template", "letter-hunt",
                  "--letter", "AB", "--output", str(tmp_path / "o.json"))
    assert result.returncode == 1
