#!/usr/bin/env python3

import sys
from errors import ConflictError, SpendrillError
from logger import get_logger
from models.category import Category, Subcategory

logger = get_logger()


def cmd_list(args, services):
    """List all categories in the database."""
    categories = services.state.snapshot.categories

    if not categories:
        logger.info("No categories found.")
        return

    logger.info("\nCategories:")
    logger.info("=" * 80)
    for category in categories:
        logger.info(f"{category.emoji or ' '} {category.name} (ID: {category.id})")
        if args.verbose:
            for sub in category.subcategories:
                logger.info(f"    {sub.emoji or ' '} {sub.name} (ID: {sub.id})")
    logger.info("-" * 80)
    logger.info(f"\nTotal categories: {len(categories)}")


def cmd_create(args, services):
    """Create a new category from command-line options."""
    subcategories = []
    for value in args.sub or []:
        # "Name" or "Name:emoji"
        name, _, emoji = value.partition(":")
        subcategories.append(Subcategory(id="", name=name.strip(), emoji=emoji.strip()))

    try:
        category = services.state.add_category(
            Category(
                id=args.id or "",
                name=args.name,
                emoji=args.emoji or "",
                subcategories=subcategories,
            )
        )
    except SpendrillError as e:
        logger.error(f"Error creating category: {e}")
        sys.exit(1)

    logger.info(f"\n✓ Category ready with ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    if category.subcategories:
        logger.info(f"  Subcategories: {len(category.subcategories)}")


def cmd_delete(args, services):
    """Delete a category by ID, optionally with its transactions."""
    category = services.categories.find(args.category_id)
    if not category:
        logger.error(f"Category with ID {args.category_id} not found.")
        sys.exit(1)

    count = services.categories.count_transactions(category.id)
    logger.info("\nCategory to delete:")
    logger.info(f"  ID: {category.id}")
    logger.info(f"  Name: {category.name}")
    logger.info(f"  Transactions: {count}")

    if not args.yes:
        confirm = (
            input("\nAre you sure you want to delete this category? (yes/no): ")
            .strip()
            .lower()
        )
        if confirm != "yes":
            logger.info("Deletion cancelled.")
            return

    try:
        removed = services.state.delete_category(category.id, force=args.force)
    except ConflictError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"✓ Category '{category.name}' deleted ({removed} transaction(s) removed).")


def cmd_seed(args, services):
    """Seed the default category taxonomy if the store was never seeded."""
    created = services.seed.seed_defaults()
    if created:
        services.state.refresh_categories()
        logger.info(f"✓ Seeded {created} categories.")
    else:
        logger.info("Nothing to seed.")


def setup_parser(subparsers):
    """Setup categories subcommand parser.

    Args:
        subparsers: The subparsers object from the main CLI
    """
    parser = subparsers.add_parser(
        "categories",
        help="Manage categories",
        description="Create, list, and delete spending categories",
    )

    categories_subparsers = parser.add_subparsers(
        title="subcommands",
        description="Available category commands",
        dest="subcommand",
        required=True,
    )

    # categories list
    list_parser = categories_subparsers.add_parser("list", help="List all categories")
    list_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Also list subcategories"
    )
    list_parser.set_defaults(func=cmd_list)

    # categories create
    create_parser = categories_subparsers.add_parser(
        "create", help="Create a new category"
    )
    create_parser.add_argument("name", help="Category name")
    create_parser.add_argument("--emoji", help="Display emoji")
    create_parser.add_argument("--id", help="Explicit id (derived from name if omitted)")
    create_parser.add_argument(
        "--sub",
        action="append",
        metavar="NAME[:EMOJI]",
        help="Subcategory, may be repeated",
    )
    create_parser.set_defaults(func=cmd_create)

    # categories delete
    delete_parser = categories_subparsers.add_parser(
        "delete", help="Delete a category by ID"
    )
    delete_parser.add_argument("category_id", help="ID of the category to delete")
    delete_parser.add_argument(
        "--force",
        action="store_true",
        help="Also delete every transaction in this category",
    )
    delete_parser.add_argument(
        "-y", "--yes", action="store_true", help="Do not ask for confirmation"
    )
    delete_parser.set_defaults(func=cmd_delete)

    # categories seed
    seed_parser = categories_subparsers.add_parser(
        "seed", help="Seed the default categories"
    )
    seed_parser.set_defaults(func=cmd_seed)
