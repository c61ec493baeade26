"""End-to-end subprocess tests for the scripts/slots.py dispatcher.

Covers resolve / audit delegation (``--out`` translated to ``--output``),
the verify determinism check, and usage errors.
"""

import json
import os
import subprocess
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SCRIPT = Path(__file__).resolve().parents[2] / "scripts/slots.py"


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    """Write a lullaby catalog and request; return (catalog, request)."""
    assets = [
        {"id": "music", "media_type": "audio", "status": "approved",
         "metadata": {"asset_class": "lullaby_music", "template": "lullaby"}},
        {"id": "greeting", "media_type": "audio", "status": "approved",
         "metadata": {"asset_class": "bedtime_greeting", "template": "lullaby",
                      "child_name": "Andrew"}},
    ]
    assets += [
        {"id": f"scene-{i:02d}", "media_type": "image", "status": "approved",
         "created_at": f"2024-02-{i + 1:02d}T00:00:00Z", "theme": "Dogs",
         "metadata": {"asset_class": "bedtime_scene", "template": "lullaby"}}
        for i in range(20)
    ]
    catalog = tmp_path / "catalog.json"
    catalog.write_text(json.dumps({"assets": assets}), encoding="utf-8")
    request = tmp_path / "request.json"
    request.write_text(
        json.dumps({"child_name": "Andrew", "template_type": "lullaby", "theme": "puppies"}),
        encoding="utf-8",
    )
    return catalog, request


def _run(*args: str) -> subprocess.CompletedProcess:
    env = {k: v for k, v in os.environ.items() if not k.startswith("SLOT_RESOLVER_")}
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        env=env,
        capture_output=True,
        text=True,
    )


# ---------------------------------------------------------------------------
# Test 1 — resolve
# ---------------------------------------------------------------------------


def test_resolve_delegates_and_writes_out(tmp_path: Path) -> None:
    catalog, request = _write_inputs(tmp_path)
    out = tmp_path / "resolution.json"
    result = _run("resolve", "--catalog", str(catalog), "--request", str(request),
                  "--out", str(out), "--strict")

    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == (
        "OK: 28 slots; 22 ready; completion 79%; can_generate=true"
    )
    envelope = json.loads(out.read_text(encoding="utf-8"))
    assert envelope["slots"]["bedtimeImage[0]"]["asset_id"] == "scene-19"
    assert envelope["slots"]["bedtimeImage[20]"]["status"] == "missing"


def test_resolve_inline_flags(tmp_path: Path) -> None:
    catalog, _ = _write_inputs(tmp_path)
    result = _run("resolve", "--catalog", str(catalog), "--child", "Andrew",
                  "--template", "lullaby", "--theme", "cats", "--out", str(tmp_path / "o.json"))
    assert result.returncode == 0, result.stderr
    assert "can_generate=false" in result.stdout


def test_resolve_without_out_exits_2(tmp_path: Path) -> None:
    catalog, request = _write_inputs(tmp_path)
    result = _run("resolve", "--catalog", str(catalog), "--request", str(request))
    assert result.returncode == 2


# ---------------------------------------------------------------------------
# Test 2 — audit
# ---------------------------------------------------------------------------


def test_audit_delegates_to_stdout(tmp_path: Path) -> None:
    snapshot = tmp_path / "publication.json"
    snapshot.write_text(json.dumps({
        "videos": [{"id": "v1", "approval_status": "approved"}],
        "assignments": [],
    }), encoding="utf-8")
    result = _run("audit", "--snapshot", str(snapshot))

    assert result.returncode == 0, result.stderr
    report = json.loads(result.stdout)
    assert report["reconciliation"]["diagnostics"][0]["reason"] == "no_assignment"


# ---------------------------------------------------------------------------
# Test 3 — verify
# ---------------------------------------------------------------------------


def test_verify_ok_for_deterministic_resolution(tmp_path: Path) -> None:
    catalog, request = _write_inputs(tmp_path)
    result = _run("verify", "--catalog", str(catalog), "--request", str(request))
    assert result.returncode == 0, result.stderr
    assert result.stdout.strip() == "OK: slots verified"


def test_verify_fails_when_resolution_fails(tmp_path: Path) -> None:
    _, request = _write_inputs(tmp_path)
    result = _run("verify", "--catalog", str(tmp_path / "nope.json"), "--request", str(request))
    assert result.returncode == 1
    assert "ERROR: slot verification failed" in result.stderr


# ---------------------------------------------------------------------------
# Test 4 — Usage errors
# ---------------------------------------------------------------------------


def test_no_subcommand_exits_2() -> None:
    result = _run()
    assert result.returncode == 2
    assert "Usage:" in result.stderr


def test_unknown_subcommand_exits_2() -> None:
    result = _run("publish")
    assert result.returncode == 2
    assert "Unknown subcommand: 'publish'" in result.stderr
