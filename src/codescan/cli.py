"""CLI entry point: ``codescan scan``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from codescan import __version__
from codescan.client.http import HttpScanClient
from codescan.config import Settings
from codescan.constants import StageProgress
from codescan.errors import CodeScanError
from codescan.events import StageEvent
from codescan.logging_config import setup_logging
from codescan.payload import archive
from codescan.payload.project import LocalProject
from codescan.payload.session_config import PROFILES, CodeScanSessionConfig
from codescan.session import ScanResult, ScanSession


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"codescan {__version__}")
        return

    if args.command == "scan":
        _run_scan(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="codescan",
        description=(
            "Package a project, run a remote code scan and "
            "report the findings."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    scan = sub.add_parser("scan", help="Scan a project")
    scan.add_argument(
        "project",
        type=str,
        help="Path to the project root",
    )
    scan.add_argument(
        "--file",
        "-f",
        default=None,
        help="Selected file; always included in the payload",
    )
    scan.add_argument(
        "--profile",
        "-p",
        choices=sorted(PROFILES),
        default="default",
        help="Scan profile (default: default)",
    )
    scan.add_argument(
        "--build-artifacts",
        default=None,
        help="Directory of build outputs to upload alongside sources",
    )
    scan.add_argument(
        "--log-file",
        default=None,
        help="Build/execute log to include in the source archive",
    )
    scan.add_argument(
        "--dry-run",
        action="store_true",
        help="Build the payload and print its summary without uploading",
    )
    scan.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    scan.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )
    return parser


def _run_scan(args: argparse.Namespace) -> None:
    """Execute the scan command."""
    settings = Settings()
    setup_logging("DEBUG" if args.verbose else settings.log_level)

    try:
        project = LocalProject(Path(args.project), settings)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    config = CodeScanSessionConfig.create(
        Path(args.file) if args.file else None,
        project,
        settings,
        args.profile,
        build_artifacts_dir=(
            Path(args.build_artifacts) if args.build_artifacts else None
        ),
        aux_log=Path(args.log_file) if args.log_file else None,
    )

    try:
        if args.dry_run:
            _dry_run(config, as_json=args.json)
            return
        result = asyncio.run(_scan(config, settings, verbose=args.verbose))
    except CodeScanError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    _print_result(result, as_json=args.json)


async def _scan(
    config: CodeScanSessionConfig, settings: Settings, *, verbose: bool
) -> ScanResult:
    def on_progress(event: StageEvent) -> None:
        if verbose and event.status == StageProgress.RUNNING:
            print(f"  {event.label}...")

    async with HttpScanClient(settings) as client:
        session = ScanSession(
            config, client, settings, on_progress=on_progress
        )
        return await session.run()


def _dry_run(config: CodeScanSessionConfig, *, as_json: bool) -> None:
    payload = config.create_payload()
    try:
        ctx = payload.context
        if as_json:
            print(ctx.model_dump_json(indent=2))
            return
        print(f"Language:      {ctx.language}")
        print(f"Files:         {ctx.total_files}")
        print(f"Lines:         {ctx.total_lines}")
        print(f"Payload bytes: {ctx.payload_size}")
        print(f"Archive bytes: {ctx.src_payload_size}")
    finally:
        for path in payload.archives:
            archive.remove_archive(path)


def _print_result(result: ScanResult, *, as_json: bool) -> None:
    if as_json:
        doc = {
            "job_id": result.context.job_id,
            "language": result.context.language,
            "payload_size": result.context.payload_size,
            "lines_scanned": result.context.lines_scanned,
            "issues": [
                {
                    "file": str(issue.file),
                    "start_line": issue.start_line,
                    "start_col": issue.start_col,
                    "end_line": issue.end_line,
                    "end_col": issue.end_col,
                    "title": issue.title,
                    "description": issue.description.text,
                }
                for issue in result.issues
            ],
        }
        print(json.dumps(doc, indent=2))
        return

    print(
        f"Scan {result.context.job_id}: {result.context.total_issues} "
        f"issue(s) in {result.context.lines_scanned} lines "
        f"({result.context.language})"
    )
    for issue in result.issues:
        print(
            f"{issue.file}:{issue.start_line}-{issue.end_line} "
            f"{issue.title}"
        )
