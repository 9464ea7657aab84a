"""Salonbook CLI - Command-line interface for the booking engine.

Usage:
    salonbook init-db
    salonbook seed seeds/studio.yaml
    salonbook slots studio-bela ana cut 2026-01-05
    salonbook book studio-bela ana cut 2026-01-05 10:00 --name "Maria" --email maria@example.com
    salonbook serve --port 8000
"""

import argparse
import logging

from salonbook.cli import commands
from salonbook.cli.commands import (
    cmd_book,
    cmd_init_db,
    cmd_seed,
    cmd_serve,
    cmd_slots,
)
from salonbook.config import LOG_FORMAT, LOG_LEVEL

__all__ = [
    # Submodules
    "commands",
    # Entry points
    "main",
    "create_parser",
]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser.

    Returns:
        Configured ArgumentParser for testing and main().
    """
    parser = argparse.ArgumentParser(
        description="Salonbook - appointment availability and booking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db", type=str, default=None, help="SQLite database path (default: from config)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init-db
    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.set_defaults(func=cmd_init_db)

    # seed
    seed_parser = subparsers.add_parser(
        "seed", help="Load tenants, resources and services from YAML"
    )
    seed_parser.add_argument("seed_path", help="Path to seed YAML file")
    seed_parser.set_defaults(func=cmd_seed)

    # slots
    slots_parser = subparsers.add_parser("slots", help="List available slots")
    slots_parser.add_argument("tenant_id", help="Tenant ID")
    slots_parser.add_argument("resource_id", help="Resource (professional) ID")
    slots_parser.add_argument("service_id", help="Service ID")
    slots_parser.add_argument("date", help="Date (YYYY-MM-DD)")
    slots_parser.add_argument(
        "--trim",
        action="store_true",
        help="Hide slots whose service would run past closing time",
    )
    slots_parser.set_defaults(func=cmd_slots)

    # book
    book_parser = subparsers.add_parser("book", help="Book an appointment")
    book_parser.add_argument("tenant_id", help="Tenant ID")
    book_parser.add_argument("resource_id", help="Resource (professional) ID")
    book_parser.add_argument("service_id", help="Service ID")
    book_parser.add_argument("date", help="Date (YYYY-MM-DD)")
    book_parser.add_argument("start_time", help="Start time (HH:MM)")
    book_parser.add_argument("--name", "-n", required=True, help="Client name")
    book_parser.add_argument("--email", "-e", required=True, help="Client email")
    book_parser.add_argument("--phone", "-p", default=None, help="Client phone")
    book_parser.set_defaults(func=cmd_book)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main():
    """Main CLI entry point."""
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
