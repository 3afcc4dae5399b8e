#!/usr/bin/env python3
"""
Spendrill CLI - Command-line interface for the local spending data store.

Usage:
    python -m cli <command> <subcommand> [options]

Commands:
    categories   Manage categories
    transactions Add, edit and browse transactions
    backup       Export and import JSON backups
    stats        Compute spending statistics
    seed         Load sample data
    migrate      Database migrations

Examples:
    python -m cli categories list
    python -m cli transactions add --amount 120 --category food_dining --date 2025-12-28
    python -m cli transactions list --month 2025-12
    python -m cli backup export
    python -m cli backup import backup.json --replace
    python -m cli stats show
    python -m cli migrate status
"""

import sys
import argparse
from cli import backup, categories, migrate, seed, stats, transactions
from config import load_config
from services.base import Services
from db.manager import DatabaseManager
from logger import setup_logging


def main():
    """Main CLI entry point with subcommands."""
    parser = argparse.ArgumentParser(
        prog="cli",
        description="Spendrill - Personal spending data store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
    )

    # Register each command's subparser
    categories.setup_parser(subparsers)
    transactions.setup_parser(subparsers)
    backup.setup_parser(subparsers)
    stats.setup_parser(subparsers)
    seed.setup_parser(subparsers)
    migrate.setup_parser(subparsers)

    args = parser.parse_args()

    if hasattr(args, "func"):
        try:
            config = load_config()
            setup_logging(config)

            if args.command == "migrate":
                # Migrate commands need db_manager for raw database operations
                args.func(args, DatabaseManager(config))
            else:
                services = Services(config)
                services.open()
                try:
                    args.func(args, services)
                finally:
                    services.close()
        except Exception as e:
            print(f"Error: {e}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
