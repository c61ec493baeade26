#!/usr/bin/env python3
"""Resolve one template request against a catalog snapshot.

Usage:
    python scripts/resolve_slots.py \\
        --catalog  /path/to/catalog.json \\
        --request  /path/to/request.json \\
        --output   /path/to/resolution.json [--strict]

    python scripts/resolve_slots.py --catalog catalog.json \\
        --child Andrew --template letter-hunt --letter A --theme dogs \\
        --output resolution.json

The catalog defaults to SLOT_RESOLVER_CATALOG when --catalog is omitted.

Exit codes:
    0  resolved (not-ready templates still exit 0 unless --strict)
    1  invalid request, invalid snapshot or resolver error;
       template not ready in --strict mode
    2  bad arguments / input file not found
"""

import argparse
import json
import sys
from pathlib import Path

import jsonschema

# Ensure project root is on sys.path so resolvers/* and models/* are importable
# when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config import catalog_path  # noqa: E402
from app.utils.logging import configure_logging  # noqa: E402
from catalog.base import CatalogError  # noqa: E402
from catalog.defaults import TemplateDefaults  # noqa: E402
from catalog.memory import InMemoryAssetCatalog  # noqa: E402
from models.request import TemplateRequest  # noqa: E402
from normalizers.theme import ThemeNormalizer  # noqa: E402
from resolvers.slots import SlotResolver  # noqa: E402

# ---------------------------------------------------------------------------
# Contract schemas, loaded once at import time relative to project root.
# ---------------------------------------------------------------------------
_CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts" / "schemas"
_SCHEMA_CATALOG = json.loads((_CONTRACTS_DIR / "CatalogSnapshot.v1.json").read_text(encoding="utf-8"))
_SCHEMA_REQUEST = json.loads((_CONTRACTS_DIR / "TemplateRequest.v1.json").read_text(encoding="utf-8"))
_SCHEMA_OUT     = json.loads((_CONTRACTS_DIR / "ResolutionResult.v1.json").read_text(encoding="utf-8"))

_PRODUCER = "slots/resolve_slots.py"


def _load_json(path: Path, label: str) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        print(f"ERROR: failed to load {label} {path}: {exc}", file=sys.stderr)
        sys.exit(1)


def _validate(instance: dict, schema: dict, name: str, what: str) -> None:
    try:
        jsonschema.validate(instance=instance, schema=schema)
    except jsonschema.ValidationError as exc:
        print(f"ERROR: {what} does not conform to {name}: {exc.message}", file=sys.stderr)
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--catalog", "-c", metavar="PATH",
                        help="Catalog snapshot JSON (default: $SLOT_RESOLVER_CATALOG).")
    parser.add_argument("--request", "-r", metavar="PATH",
                        help="TemplateRequest JSON.  Alternative to --child/--template.")
    parser.add_argument("--child", metavar="NAME", help="Child name.")
    parser.add_argument("--template", metavar="TYPE",
                        help="Template type: letter-hunt | lullaby | name-video.")
    parser.add_argument("--letter", metavar="L", help="Target letter.")
    parser.add_argument("--theme", metavar="THEME", help="Requested theme.")
    parser.add_argument("--output", "-o", required=True, metavar="PATH",
                        help="Path to write the resolution envelope.")
    parser.add_argument("--theme-table", metavar="PATH",
                        help="Theme synonym table (default: $SLOT_RESOLVER_THEME_TABLE).")
    parser.add_argument("--strict", action="store_true",
                        help="Exit 1 if the template cannot be generated yet.")
    args = parser.parse_args()

    if args.request is None and (args.child is None or args.template is None):
        parser.error("either --request or both --child and --template are required")

    try:
        configure_logging()
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    # 1. Validate input paths
    snapshot_path = catalog_path(args.catalog)
    if snapshot_path is None:
        print("ERROR: no catalog given (--catalog or SLOT_RESOLVER_CATALOG).", file=sys.stderr)
        sys.exit(2)
    if not snapshot_path.exists():
        print(f"ERROR: catalog file not found: {snapshot_path}", file=sys.stderr)
        sys.exit(2)
    request_path = Path(args.request) if args.request else None
    if request_path is not None and not request_path.exists():
        print(f"ERROR: request file not found: {request_path}", file=sys.stderr)
        sys.exit(2)

    # 2. Load and validate inputs against their contracts
    snapshot = _load_json(snapshot_path, "catalog")
    _validate(snapshot, _SCHEMA_CATALOG, "CatalogSnapshot.v1.json", "catalog snapshot")

    if request_path is not None:
        payload = _load_json(request_path, "request")
    else:
        payload = {"child_name": args.child, "template_type": args.template}
        if args.letter is not None:
            payload["target_letter"] = args.letter
        if args.theme is not None:
            payload["theme"] = args.theme
    _validate(payload, _SCHEMA_REQUEST, "TemplateRequest.v1.json", "request")

    # 3. Resolve
    try:
        catalog = InMemoryAssetCatalog.from_payload(snapshot)
        defaults = TemplateDefaults.from_payload(snapshot.get("template_defaults", []))
        themes = ThemeNormalizer.from_file(args.theme_table)
        request = TemplateRequest.model_validate(payload)
        result = SlotResolver(catalog, themes=themes, defaults=defaults).resolve(request)
    except (CatalogError, ValueError) as exc:
        # InvalidTemplateRequest and pydantic ValidationError are ValueErrors.
        message = str(exc)
        print(message if message.startswith("ERROR:") else f"ERROR: {message}", file=sys.stderr)
        sys.exit(1)

    # 4. Write output (envelope format per ResolutionResult.v1.json)
    envelope = {
        **result.model_dump(mode="json"),
        "producer": _PRODUCER,
        "generated_at": "1970-01-01T00:00:00Z",
    }
    # 4b. Validate output envelope against contract before writing
    _validate(envelope, _SCHEMA_OUT, "ResolutionResult.v1.json", "output envelope")

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(envelope, indent=2), encoding="utf-8")

    # 5. Summary
    readiness = result.readiness
    print(
        f"OK: {readiness.total_slots} slots; {readiness.ready_count} ready; "
        f"completion {readiness.completion_percent}%; "
        f"can_generate={str(readiness.can_generate).lower()}"
    )

    # 6. Strict mode: not-ready templates fail
    if args.strict and not readiness.can_generate:
        for reason in readiness.blocking_reasons:
            print(f"ERROR: {reason.code}: {reason.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
