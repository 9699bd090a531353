#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from campus_sync.adapters.sqlalchemy.unit_of_work import shutdown
from campus_sync.app import clean_obviated, sync_all, sync_kind
from campus_sync.config import ConfigurationError, configure_logging, get_sync_config
from campus_sync.domain.sync import InvalidSchoolScopeError, SyncKind, parse_scope

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="campus-sync", description="Mirror WordPress school content into the database"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Synchronise records from WordPress")
    sync.add_argument("--school", type=str, help="Restrict the run to one school code")
    sync.add_argument(
        "--kind",
        choices=[kind.value for kind in SyncKind],
        help="Synchronise a single kind (its prerequisites are pulled first)",
    )
    sync.add_argument(
        "--quiet",
        action="store_true",
        help="Only log phase banners and counts, not every record",
    )

    clean = commands.add_parser("clean", help="Delete rows obviated long ago")
    clean.add_argument(
        "--days",
        type=int,
        help="Age threshold in days (default: CAMPUS_SYNC_CLEANUP_AGE_DAYS or 30)",
    )
    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "sync":
        parse_scope(args.school)
    elif args.days is not None and args.days < 0:
        raise ValueError("--days must not be negative")


async def _run(args: argparse.Namespace) -> None:
    try:
        if args.command == "clean":
            await clean_obviated(args.days)
            return
        config = get_sync_config(verbose=False) if args.quiet else get_sync_config()
        if args.kind:
            await sync_kind(args.kind, school=args.school, config=config)
        else:
            await sync_all(school=args.school, config=config)
    finally:
        await shutdown()


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    configure_logging(level=logging.INFO)

    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(sys.argv[1:] if argv is None else argv)
        _validate(parsed_args)
    except (ValueError, InvalidSchoolScopeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        asyncio.run(_run(parsed_args))
    except (ConfigurationError, InvalidSchoolScopeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
