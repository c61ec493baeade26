#!/usr/bin/env python3
"""slots: CLI for the slot resolver system.

Usage:
    slots resolve --catalog <catalog.json> (--request <request.json> | --child NAME --template TYPE
                  [--letter L] [--theme THEME]) --out <resolution.json> [--strict]
    slots audit   --snapshot <publication.json> [--out <audit.json>] [--apply]
    slots verify  --catalog <catalog.json> --request <request.json>

Subcommands:
    resolve   Resolve a template request and write the resolution envelope.
    audit     Audit video visibility and plan (or --apply) approval reconciliation.
    verify    Resolve the same request twice and assert byte-identical output
              (determinism check).

Exit codes:
    0  success
    1  resolver / validation error; or template not ready in --strict mode
    2  invalid usage or missing input file
"""
import argparse
import subprocess
import sys
import tempfile
from pathlib import Path

_SCRIPTS_DIR = Path(__file__).resolve().parent
_RESOLVE_SCRIPT = _SCRIPTS_DIR / "resolve_slots.py"
_AUDIT_SCRIPT = _SCRIPTS_DIR / "audit_visibility.py"

_USAGE = """\
Usage:
  slots resolve --catalog <path> (--request <path> | --child NAME --template TYPE) --out <path> [--strict]
  slots audit --snapshot <path> [--out <path>] [--apply]
  slots verify --catalog <path> --request <path>
"""


def _parse(parser: argparse.ArgumentParser, argv: list[str]) -> argparse.Namespace | int:
    try:
        return parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code) if exc.code is not None else 2


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------

def cmd_resolve(argv: list[str]) -> int:
    """Delegate to resolve_slots.py, translating --out to --output."""
    parser = argparse.ArgumentParser(prog="slots resolve", add_help=True)
    parser.add_argument("--catalog", metavar="PATH", help="Catalog snapshot JSON")
    parser.add_argument("--request", metavar="PATH", help="TemplateRequest JSON")
    parser.add_argument("--child", metavar="NAME")
    parser.add_argument("--template", metavar="TYPE")
    parser.add_argument("--letter", metavar="L")
    parser.add_argument("--theme", metavar="THEME")
    parser.add_argument("--out", dest="output", required=True, metavar="PATH",
                        help="Output resolution envelope")
    parser.add_argument("--strict", action="store_true",
                        help="Exit 1 if the template cannot be generated yet")

    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    cmd = [sys.executable, str(_RESOLVE_SCRIPT), "--output", args.output]
    for flag in ("catalog", "request", "child", "template", "letter", "theme"):
        value = getattr(args, flag)
        if value is not None:
            cmd.extend([f"--{flag}", value])
    if args.strict:
        cmd.append("--strict")

    return subprocess.run(cmd).returncode


# ---------------------------------------------------------------------------
# audit
# ---------------------------------------------------------------------------

def cmd_audit(argv: list[str]) -> int:
    """Delegate to audit_visibility.py, translating --out to --output."""
    parser = argparse.ArgumentParser(prog="slots audit", add_help=True)
    parser.add_argument("--snapshot", required=True, metavar="PATH",
                        help="PublicationSnapshot JSON")
    parser.add_argument("--out", dest="output", metavar="PATH",
                        help="Output audit envelope (default: stdout)")
    parser.add_argument("--apply", action="store_true",
                        help="Apply planned draft -> published advances")

    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    cmd = [sys.executable, str(_AUDIT_SCRIPT), "--snapshot", args.snapshot]
    if args.output is not None:
        cmd.extend(["--output", args.output])
    if args.apply:
        cmd.append("--apply")

    return subprocess.run(cmd).returncode


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------

def _run_resolve(catalog: str, request: str, output: Path) -> bool:
    cmd = [
        sys.executable, str(_RESOLVE_SCRIPT),
        "--catalog", catalog,
        "--request", request,
        "--output", str(output),
    ]
    return subprocess.run(cmd, capture_output=True).returncode == 0


def cmd_verify(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="slots verify", add_help=True)
    parser.add_argument("--catalog", required=True, metavar="PATH")
    parser.add_argument("--request", required=True, metavar="PATH")

    args = _parse(parser, argv)
    if isinstance(args, int):
        return args

    with tempfile.TemporaryDirectory() as tmp:
        out_1 = Path(tmp) / "resolution-1.json"
        out_2 = Path(tmp) / "resolution-2.json"

        if not _run_resolve(args.catalog, args.request, out_1):
            print("ERROR: slot verification failed", file=sys.stderr)
            return 1
        if not _run_resolve(args.catalog, args.request, out_2):
            print("ERROR: slot verification failed", file=sys.stderr)
            return 1

        if out_1.read_bytes() != out_2.read_bytes():
            print("ERROR: slot verification failed: non-deterministic output", file=sys.stderr)
            return 1

    print("OK: slots verified")
    return 0


# ---------------------------------------------------------------------------
# entry point
# ---------------------------------------------------------------------------

def main() -> None:
    if len(sys.argv) < 2:
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    subcmd, rest = sys.argv[1], sys.argv[2:]

    if subcmd == "resolve":
        sys.exit(cmd_resolve(rest))
    elif subcmd == "audit":
        sys.exit(cmd_audit(rest))
    elif subcmd == "verify":
        sys.exit(cmd_verify(rest))
    else:
        print(f"Unknown subcommand: {subcmd!r}\n{_USAGE}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
