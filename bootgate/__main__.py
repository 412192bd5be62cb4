"""Command-line entry point: ``python -m bootgate APP``."""

from __future__ import annotations

import argparse
import os
import sys

from bootgate.core.config import settings
from bootgate.core.logging import setup_logging
from bootgate.gate import migrate
from bootgate.models import GateStatus


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bootgate",
        description="Apply pending database migrations for an application before it boots.",
    )
    parser.add_argument("app", help="Importable name of the application module")
    parser.add_argument(
        "--no-halt",
        action="store_true",
        help="Return normally after migrating instead of halting the process",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    parser.add_argument("--log-format", default=settings.log_format, choices=["text", "json"])
    parser.add_argument(
        "--app-dir",
        default=".",
        help="Directory prepended to sys.path before loading the application",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, fmt=args.log_format)
    sys.path.insert(0, os.path.abspath(args.app_dir))

    result = migrate(args.app, halt_on_migration=False if args.no_halt else None)

    if result.status is GateStatus.FAILED:
        print(f"Error: {result.error.message}", file=sys.stderr)
        return 1
    if result.status is GateStatus.MIGRATED:
        print(f"Migrated: {', '.join(str(v) for v in result.migrations)}")
    else:
        print("Nothing to migrate")
    return 0


if __name__ == "__main__":
    sys.exit(main())
