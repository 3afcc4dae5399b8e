#!/usr/bin/env python3

import sys
from pathlib import Path
from errors import SpendrillError
from logger import get_logger

logger = get_logger()


def cmd_export(args, services):
    """Export the whole store to a JSON file."""
    path = services.backups.export_to_file(Path(args.output) if args.output else None)
    logger.info(f"✓ Backup written to: {path}")


def cmd_import(args, services):
    """Import a JSON backup, merging or replacing the store content."""
    path = Path(args.input)
    if not path.exists():
        logger.error(f"File not found: {args.input}")
        sys.exit(1)

    if args.replace and not args.yes:
        confirm = (
            input("\nThis will delete ALL existing data before importing. Continue? (yes/no): ")
            .strip()
            .lower()
        )
        if confirm != "yes":
            logger.info("Import cancelled.")
            return

    try:
        payload = services.backups.read_file(path)
        summary = services.state.import_backup(payload, clear_existing=args.replace)
    except SpendrillError as e:
        logger.error(f"Import aborted, nothing was changed: {e}")
        sys.exit(1)

    logger.info("✓ Import complete")
    logger.info(f"  Categories: {summary.categories} added, {summary.categories_skipped} already present")
    logger.info(f"  Transactions: {summary.transactions}")
    logger.info(f"  Settings: {summary.settings}")


def setup_parser(subparsers):
    """Setup backup subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "backup",
        help="Export and import JSON backups",
        description="Export the store to JSON or import a previous export",
    )

    backup_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available backup commands",
        dest="subcommand",
        required=True,
    )

    export_parser = backup_subparsers.add_parser("export", help="Export to a JSON file")
    export_parser.add_argument(
        "output",
        nargs="?",
        help="Output file (default: dated file in the backup directory)",
    )
    export_parser.set_defaults(func=cmd_export)

    import_parser = backup_subparsers.add_parser("import", help="Import a JSON file")
    import_parser.add_argument("input", help="Backup file to import")
    import_parser.add_argument(
        "--replace",
        action="store_true",
        help="Wipe existing data before importing (default: merge)",
    )
    import_parser.add_argument(
        "-y", "--yes", action="store_true", help="Do not ask for confirmation"
    )
    import_parser.set_defaults(func=cmd_import)
