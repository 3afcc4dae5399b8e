#!/usr/bin/env python3

import sys
from logger import get_logger

logger = get_logger()


def cmd_show(args, services):
    """Compute statistics in the worker process and print them."""
    services.stats.request(services.state.snapshot.transactions)
    try:
        stats = services.stats.wait(timeout=args.timeout)
    except TimeoutError as e:
        logger.error(str(e))
        sys.exit(1)
    if stats is None:
        logger.error("The stats worker returned no result.")
        sys.exit(1)

    names = {c.id: c.name for c in services.state.snapshot.categories}

    logger.info("\nSpending statistics")
    logger.info("=" * 80)
    logger.info(f"This month:     {stats['monthlyTotal']:.2f}")
    logger.info(f"Average:        {stats['average']}")
    top = stats["topCategory"]
    logger.info(f"Top category:   {names.get(top, top) if top else '-'}")

    logger.info("\nBy category:")
    for cat_id, total in sorted(
        stats["categoryTotals"].items(), key=lambda item: item[1], reverse=True
    ):
        logger.info(f"  {names.get(cat_id, cat_id):<40} {total:>12.2f}")

    logger.info("\nTrend:")
    for point in stats["trend"]:
        logger.info(f"  {point['month']}  {point['total']:>12.2f}")


def setup_parser(subparsers):
    """Setup stats subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "stats",
        help="Compute spending statistics",
        description="Compute spending statistics in the aggregation worker",
    )

    stats_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available stats commands",
        dest="subcommand",
        required=True,
    )

    show_parser = stats_subparsers.add_parser("show", help="Show statistics")
    show_parser.add_argument(
        "--timeout", type=float, default=30.0, help="Seconds to wait for the worker"
    )
    show_parser.set_defaults(func=cmd_show)
