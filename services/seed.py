"""First-run seeding of the default category taxonomy and sample data."""

import json
from pathlib import Path
from typing import Optional
from config import get_seed_dir
from logger import get_logger
from models.category import Category
from models.setting import SAMPLE_DATA_LOADED, SEED_COMPLETED
from models.transaction import Transaction

logger = get_logger()


class SeedService:
    """Populates a new store with default records, at most once.

    Args:
        db_manager: Database manager instance for database operations.
        categories: CategoryService used for duplicate-proof inserts.
        transactions: TransactionService used for validated inserts.
        settings: SettingService holding the seed flags.
        seed_dir: Directory with categories.json and sample_transactions.json.
    """

    def __init__(self, db_manager, categories, transactions, settings, seed_dir: Optional[Path] = None):
        self.db_manager = db_manager
        self.categories = categories
        self.transactions = transactions
        self.settings = settings
        self.seed_dir = seed_dir or get_seed_dir()

    def seed_defaults(self) -> int:
        """Insert the default taxonomy unless the store was already seeded.

        Seeding is skipped when the seedCompleted flag is set. When categories
        exist without the flag, the flag is set and nothing is inserted; an
        emptied store is never re-seeded silently.

        Returns:
            Number of categories inserted.
        """
        with self.db_manager.transaction() as conn:
            if self.settings._get(conn, SEED_COMPLETED, False):
                logger.debug("Default categories already seeded")
                return 0

            existing = conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0]
            if existing:
                logger.info(f"Store already has {existing} categories, skipping seed")
                self.settings._put(conn, SEED_COMPLETED, True)
                return 0

            created = 0
            for data in self._load("categories.json"):
                if not data.get("name"):
                    logger.warning("Skipping seed category with no name")
                    continue
                self.categories._insert_if_absent(conn, Category.from_dict(data))
                created += 1

            self.settings._put(conn, SEED_COMPLETED, True)

        logger.info(f"Seeded {created} default categories")
        return created

    def seed_sample_transactions(self) -> int:
        """Insert the bundled sample transactions once.

        Samples whose category or subcategory is not in the store are skipped.

        Returns:
            Number of transactions inserted.
        """
        with self.db_manager.transaction() as conn:
            if self.settings._get(conn, SAMPLE_DATA_LOADED, False):
                logger.info("Sample transactions already loaded")
                return 0

            created = 0
            for data in self._load("sample_transactions.json"):
                transaction = Transaction.from_dict(data)
                category = self.categories._find(conn, transaction.cat_id)
                if category is None or category.find_subcategory(transaction.sub_id) is None:
                    logger.warning(
                        f"Skipping sample for unknown category "
                        f"{transaction.cat_id}/{transaction.sub_id}"
                    )
                    continue
                self.transactions._write(conn, transaction, replace=False)
                created += 1

            self.settings._put(conn, SAMPLE_DATA_LOADED, True)

        logger.info(f"Loaded {created} sample transactions")
        return created

    def _load(self, filename: str) -> list:
        with open(self.seed_dir / filename, "r", encoding="utf-8") as f:
            return json.load(f)
