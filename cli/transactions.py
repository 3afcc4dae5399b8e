#!/usr/bin/env python3

import sys
from datetime import date
from dateutil.relativedelta import relativedelta
from errors import SpendrillError
from logger import get_logger
from models.transaction import Transaction
from services.state import enrich, group_by_date

logger = get_logger()


def _print_transactions(transactions):
    for group in group_by_date(transactions):
        logger.info(f"\n{group['date']}  (total {group['total']:.2f})")
        for t in group["items"]:
            label = t.cat_name + (f" / {t.sub_name}" if t.sub_name else "")
            note = f"  {t.note}" if t.note else ""
            logger.info(f"  {t.icon} {t.amount:>10.2f}  {label}{note}  [{t.id}]")


def cmd_list(args, services):
    """List transactions for a month (current month by default)."""
    if args.month:
        try:
            year, month = (int(part) for part in args.month.split("-"))
        except ValueError:
            logger.error("Month must be in YYYY-MM format.")
            sys.exit(1)
    else:
        target = date.today() - relativedelta(months=args.months_back)
        year, month = target.year, target.month

    transactions = services.state.transactions_for_month(year, month)
    if not transactions:
        logger.info(f"No transactions in {year:04d}-{month:02d}.")
        return

    _print_transactions(transactions)
    total = sum(t.amount for t in transactions)
    logger.info(f"\n{len(transactions)} transaction(s), total {total:.2f}")


def cmd_add(args, services):
    """Add a transaction."""
    try:
        transaction = services.state.add_transaction(
            Transaction(
                id=None,
                date=args.date or date.today().isoformat(),
                amount=args.amount,
                cat_id=args.category,
                sub_id=args.sub,
                note=args.note or "",
            )
        )
    except SpendrillError as e:
        logger.error(f"Error adding transaction: {e}")
        sys.exit(1)

    logger.info(f"✓ Added {transaction.amount:.2f} to {transaction.cat_name} (ID: {transaction.id})")


def cmd_update(args, services):
    """Update fields of an existing transaction."""
    fields = {}
    if args.date is not None:
        fields["date"] = args.date
    if args.amount is not None:
        fields["amount"] = args.amount
    if args.category is not None:
        fields["cat_id"] = args.category
    if args.sub is not None:
        fields["sub_id"] = args.sub
    if args.note is not None:
        fields["note"] = args.note

    if not fields:
        logger.error("Nothing to update.")
        sys.exit(1)

    try:
        transaction = services.state.update_transaction(args.transaction_id, **fields)
    except SpendrillError as e:
        logger.error(f"Error updating transaction: {e}")
        sys.exit(1)

    logger.info(f"✓ Updated transaction {transaction.id}")


def cmd_delete(args, services):
    """Delete a transaction by ID."""
    try:
        removed = services.state.delete_transaction(args.transaction_id)
    except SpendrillError as e:
        logger.error(f"Error deleting transaction: {e}")
        sys.exit(1)

    logger.info(f"✓ Deleted {removed.amount:.2f} ({removed.cat_name}) on {removed.date}")


def cmd_search(args, services):
    """Search transactions by note, amount or date."""
    found = services.transactions.search(args.query)
    if not found:
        logger.info("No matching transactions.")
        return

    lookup = {c.id: c for c in services.state.snapshot.categories}
    _print_transactions([enrich(t, lookup) for t in found])
    logger.info(f"\n{len(found)} match(es)")


def setup_parser(subparsers):
    """Setup transactions subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "transactions",
        help="Add, edit and browse transactions",
        description="Add, edit, delete, list and search transactions",
    )

    transactions_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available transaction commands",
        dest="subcommand",
        required=True,
    )

    # transactions list
    list_parser = transactions_subparsers.add_parser(
        "list", help="List transactions for a month"
    )
    month_group = list_parser.add_mutually_exclusive_group()
    month_group.add_argument("--month", help="Month in YYYY-MM format")
    month_group.add_argument(
        "--months-back",
        type=int,
        default=0,
        help="Number of months before the current one (default: 0)",
    )
    list_parser.set_defaults(func=cmd_list)

    # transactions add
    add_parser = transactions_subparsers.add_parser("add", help="Add a transaction")
    add_parser.add_argument("--amount", type=float, required=True, help="Positive amount")
    add_parser.add_argument("--category", required=True, help="Category ID")
    add_parser.add_argument("--sub", help="Subcategory ID")
    add_parser.add_argument("--date", help="ISO date (default: today)")
    add_parser.add_argument("--note", help="Free-text note")
    add_parser.set_defaults(func=cmd_add)

    # transactions update
    update_parser = transactions_subparsers.add_parser(
        "update", help="Update a transaction"
    )
    update_parser.add_argument("transaction_id", help="Transaction ID")
    update_parser.add_argument("--amount", type=float)
    update_parser.add_argument("--category")
    update_parser.add_argument("--sub")
    update_parser.add_argument("--date")
    update_parser.add_argument("--note")
    update_parser.set_defaults(func=cmd_update)

    # transactions delete
    delete_parser = transactions_subparsers.add_parser(
        "delete", help="Delete a transaction"
    )
    delete_parser.add_argument("transaction_id", help="Transaction ID")
    delete_parser.set_defaults(func=cmd_delete)

    # transactions search
    search_parser = transactions_subparsers.add_parser(
        "search", help="Search by note, amount or date"
    )
    search_parser.add_argument("query", help="Text to search for")
    search_parser.set_defaults(func=cmd_search)
