#!/usr/bin/env python3

from logger import get_logger

logger = get_logger()


def cmd_sample(args, services):
    """Load the bundled sample transactions once."""
    created = services.seed.seed_sample_transactions()
    if created:
        services.state.refresh_transactions()
        services.state.refresh_settings()
        logger.info(f"✓ Loaded {created} sample transactions.")
    else:
        logger.info("Sample transactions were already loaded.")


def setup_parser(subparsers):
    """Setup seed subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "seed",
        help="Load sample data",
        description="Load bundled sample data into the store",
    )

    seed_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available seed commands",
        dest="subcommand",
        required=True,
    )

    sample_parser = seed_subparsers.add_parser(
        "sample", help="Load sample transactions"
    )
    sample_parser.set_defaults(func=cmd_sample)
