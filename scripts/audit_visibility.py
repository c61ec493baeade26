#!/usr/bin/env python3
"""Audit who can see each video and reconcile approvals with assignments.

Usage:
    python scripts/audit_visibility.py --snapshot /path/to/publication.json
    python scripts/audit_visibility.py --snapshot publication.json \\
        --output audit.json [--apply]

Without --apply the audit only reports: per-child visible videos, per-video
audiences, general/individual assignment conflicts, and the planned
draft -> published advances plus orphaned approvals.  With --apply the plan
is applied through compare-and-set and the updated assignment rows are
included in the report.  Conflicts are never auto-resolved.

Without --output the report is printed to stdout.

Exit codes:
    0  audit completed (diagnostics do not change the exit code)
    1  invalid snapshot
    2  bad arguments / snapshot file not found
"""

import argparse
import json
import sys
from pathlib import Path

import jsonschema

# Ensure project root is on sys.path so resolvers/* and models/* are importable
# when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.utils.logging import configure_logging  # noqa: E402
from catalog.assignments import InMemoryAssignmentStore  # noqa: E402
from models.publication import PublicationSnapshot  # noqa: E402
from normalizers.theme import ThemeNormalizer  # noqa: E402
from resolvers.visibility import VisibilityResolver  # noqa: E402

# ---------------------------------------------------------------------------
# Contract schemas, loaded once at import time relative to project root.
# ---------------------------------------------------------------------------
_CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts" / "schemas"
_SCHEMA_IN  = json.loads((_CONTRACTS_DIR / "PublicationSnapshot.v1.json").read_text(encoding="utf-8"))
_SCHEMA_OUT = json.loads((_CONTRACTS_DIR / "VisibilityAudit.v1.json").read_text(encoding="utf-8"))

_PRODUCER = "slots/audit_visibility.py"


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--snapshot", "-s", required=True, metavar="PATH",
                        help="PublicationSnapshot JSON (children, videos, assignments).")
    parser.add_argument("--output", "-o", metavar="PATH",
                        help="Write the audit envelope here instead of stdout.")
    parser.add_argument("--apply", action="store_true",
                        help="Apply planned draft -> published advances (compare-and-set).")
    parser.add_argument("--theme-table", metavar="PATH",
                        help="Theme synonym table (default: $SLOT_RESOLVER_THEME_TABLE).")
    args = parser.parse_args()

    try:
        configure_logging()
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    # 1. Validate input path
    snapshot_path = Path(args.snapshot)
    if not snapshot_path.exists():
        print(f"ERROR: snapshot file not found: {snapshot_path}", file=sys.stderr)
        sys.exit(2)

    # 2. Load and validate snapshot
    try:
        raw = json.loads(snapshot_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        print(f"ERROR: failed to load {snapshot_path}: {exc}", file=sys.stderr)
        sys.exit(1)
    try:
        jsonschema.validate(instance=raw, schema=_SCHEMA_IN)
    except jsonschema.ValidationError as exc:
        print(
            f"ERROR: snapshot does not conform to PublicationSnapshot.v1.json: {exc.message}",
            file=sys.stderr,
        )
        sys.exit(1)
    try:
        snapshot = PublicationSnapshot.model_validate(raw)
        resolver = VisibilityResolver(ThemeNormalizer.from_file(args.theme_table))
    except ValueError as exc:
        message = str(exc)
        print(message if message.startswith("ERROR:") else f"ERROR: {message}", file=sys.stderr)
        sys.exit(1)

    # 3. Audit (read-only)
    assignments = snapshot.assignments
    visibility = {
        child.id: resolver.visible_video_ids(child, assignments)
        for child in sorted(snapshot.children, key=lambda c: c.id)
    }
    video_ids = sorted({v.id for v in snapshot.videos} | {a.video_id for a in assignments})
    audiences = [resolver.audience(vid, assignments, snapshot.children) for vid in video_ids]
    conflicts = resolver.detect_conflicts(assignments)
    plan = resolver.plan_reconciliation(snapshot.videos, assignments)

    # 4. Optional explicit write step
    applied = None
    store = InMemoryAssignmentStore(assignments)
    if args.apply:
        outcome = resolver.apply_reconciliation(plan, store)
        applied = {"applied": outcome.applied, "skipped": outcome.skipped}

    envelope = {
        "schema_id": "VisibilityAudit",
        "schema_version": "1.0.0",
        "producer": _PRODUCER,
        "generated_at": "1970-01-01T00:00:00Z",
        "visibility": visibility,
        "audiences": [a.model_dump(mode="json", exclude={"conflicts"}) for a in audiences],
        "conflicts": [c.model_dump(mode="json") for c in conflicts],
        "reconciliation": plan.model_dump(mode="json"),
        "applied": applied,
        "assignments": [
            a.model_dump(mode="json")
            for a in sorted(store.all_assignments(), key=lambda a: a.id)
        ],
    }
    # 4b. Validate output envelope against contract before writing
    try:
        jsonschema.validate(instance=envelope, schema=_SCHEMA_OUT)
    except jsonschema.ValidationError as exc:
        print(
            f"ERROR: output envelope does not conform to VisibilityAudit.v1.json: {exc.message}",
            file=sys.stderr,
        )
        sys.exit(1)

    text = json.dumps(envelope, indent=2)
    if args.output is None:
        print(text)
        return

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")

    # 5. Summary
    orphans = sum(1 for d in plan.diagnostics if d.kind == "OrphanedApproval")
    print(
        f"OK: {len(video_ids)} videos; {len(conflicts)} conflicts; "
        f"{orphans} orphaned approvals; {len(plan.advances)} advances planned"
        + (f"; {len(applied['applied'])} applied" if applied is not None else "")
    )


if __name__ == "__main__":
    main()
