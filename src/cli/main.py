"""nmon2tsdb CLI entry points.

This module exposes the import command and maps argparse options
onto the SDK client.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from core.config import NmonConfig
from core.constants import DEFAULT_POINT_BATCH_SIZE
from core.errors import NmonError
from core.logging_config import configure_logging
from core.types import ImportOptions
from ingest.import_sdk import NmonClient
from ingest.pipeline import STATUS_FAILED


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="nmon2tsdb",
        description="Import nmon performance files into a time-series store",
    )
    parser.add_argument("--data-root", help="Override NMON_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_import_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the nmon2tsdb CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root)
        if args.command == "import":
            return _run_import_command(client, args)
    except NmonError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None) -> NmonClient:
    """Build SDK client with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = NmonConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    configure_logging(config.log_level)
    return NmonClient(config)


def _run_import_command(client: NmonClient, args: argparse.Namespace) -> int:
    """Handle import command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code, 1 when any file failed.
    """
    options = ImportOptions(
        sources=tuple(args.sources),
        force=args.force,
        all_cpus=args.all_cpus,
        skip_disks=args.skip_disks,
        skip_metrics=args.skip_metrics,
        ssh_user=args.ssh_user,
        ssh_key=args.ssh_key,
        fail_fast_remote=not args.continue_on_remote_error,
        batch_size=args.batch_size,
    )
    results = client.import_files(options)
    for result in results:
        print(f"{result.source_name}\t{result.status}\t{result.point_count}")
    if any(result.status == STATUS_FAILED for result in results):
        return 1
    return 0


def _add_import_command(subparsers: Any) -> None:
    """Register import subcommand."""
    parser = subparsers.add_parser("import", help="Import nmon files or directories")
    parser.add_argument(
        "sources",
        nargs="+",
        help="Local file or directory, or [user@]host:path remote source",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Reimport files even when their checksum is unchanged",
    )
    parser.add_argument("--all-cpus", action="store_true", help="Import per-CPU detail rows")
    parser.add_argument("--skip-disks", action="store_true", help="Skip per-disk detail rows")
    parser.add_argument("--skip-metrics", help="Comma-separated metric names to skip")
    parser.add_argument("--ssh-user", help="Default SSH user for remote sources")
    parser.add_argument("--ssh-key", help="Private key file for remote sources")
    parser.add_argument(
        "--continue-on-remote-error",
        action="store_true",
        help="Skip unreachable hosts instead of aborting the run",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_POINT_BATCH_SIZE,
        help="Points per store write",
    )
