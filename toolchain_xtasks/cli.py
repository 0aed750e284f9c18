"""Command-line entry point for the shared xtasks."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .advisor import (
    default_reference,
    diagnostics_to_payload,
    evaluate,
    exit_code_for,
    load_project_descriptor,
    load_reference,
    render_text,
)
from .config import LOG_LEVELS, XtaskConfig
from .errors import XtaskError
from .upgrade import DepName, UpgradeSpec, upgrade
from .versioning import SemVer, sync_version

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = XtaskConfig.from_env(workspace_root=Path(args.workspace_root) if args.workspace_root else None)
        if args.log_level:
            config.log_level = args.log_level
        logging.basicConfig(level=config.log_level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

        if args.command == "upgrade-check":
            return _handle_upgrade_check(args, config)
        if args.command == "sync-version":
            return _handle_sync_version(args, config)
        if args.command == "upgrade":
            return _handle_upgrade(args, config)
    except (XtaskError, ValueError, OSError) as exc:
        print(str(exc), file=sys.stderr)
        return 2

    parser.error(f"Unknown command '{args.command}'")
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="toolchain-xtasks", description="Shared xtasks for toolchain projects.")
    parser.add_argument("--workspace-root", help="Project root (defaults to $XTASKS_WORKSPACE_ROOT or cwd).")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (defaults to $XTASKS_LOG_LEVEL or WARNING).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("upgrade-check", help="Compare project metadata with the shared reference.")
    check.add_argument("--manifest", help="Manifest to inspect (defaults to Cargo.toml in the workspace root).")
    check.add_argument("--table", help="Dotted table holding package metadata (auto-detected by default).")
    check.add_argument("--reference", help="YAML reference override (defaults to $XTASKS_REFERENCE or the embedded baseline).")
    check.add_argument("--strict", action=argparse.BooleanOptionalAction, default=None)
    check.add_argument("--format", choices=["json", "text"], default="json")

    sync = subparsers.add_parser("sync-version", help="Synchronise the crate version with cairo-lang-compiler.")
    sync.add_argument("--build", help="Custom build metadata for the version.")
    sync.add_argument("--no-pre-release", action="store_true", help="Clear the pre-release identifier.")
    sync.add_argument("--dry-run", action="store_true", help="Report what would change without editing files.")

    upgrade_cmd = subparsers.add_parser("upgrade", help="Update toolchain crates.")
    upgrade_cmd.add_argument("dep", choices=[dep.value for dep in DepName])
    upgrade_cmd.add_argument("version", nargs="?", help="Use a specific crates.io version.")
    source = upgrade_cmd.add_mutually_exclusive_group()
    source.add_argument("-r", "--rev", help="Use a specific commit/ref from the GitHub repository.")
    source.add_argument("-b", "--branch", help="Use a specific branch from the GitHub repository.")
    source.add_argument("-p", "--path", help="Use a local checkout (avoid committing this).")
    upgrade_cmd.add_argument("--dry-run", action="store_true", help="Report what would change without editing files.")

    return parser


def _handle_upgrade_check(args: argparse.Namespace, config: XtaskConfig) -> int:
    manifest = Path(args.manifest) if args.manifest else config.manifest_path
    reference_path = Path(args.reference) if args.reference else config.reference_path
    reference = load_reference(reference_path) if reference_path else default_reference()
    strict = config.strict if args.strict is None else args.strict

    project = load_project_descriptor(manifest, table=args.table)
    diagnostics = evaluate(reference.entries, project)
    logger.info("Checked %s against reference %s: %d diagnostic(s)", manifest, reference.version, len(diagnostics))

    if args.format == "text":
        print(render_text(diagnostics))
    else:
        print(json.dumps(diagnostics_to_payload(diagnostics, reference.version), indent=2))
    return exit_code_for(diagnostics, strict)


def _handle_sync_version(args: argparse.Namespace, config: XtaskConfig) -> int:
    result = sync_version(config, build=args.build, no_pre_release=args.no_pre_release, dry_run=args.dry_run)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def _handle_upgrade(args: argparse.Namespace, config: XtaskConfig) -> int:
    spec = UpgradeSpec(
        version=SemVer.parse(args.version) if args.version else None,
        rev=args.rev,
        branch=args.branch,
        path=Path(args.path).resolve() if args.path else None,
    )
    result = upgrade(config, DepName(args.dep), spec, dry_run=args.dry_run)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
