"""State snapshot cache: an enriched, joined view over the store.

The cache owns the current Snapshot. Every mutation goes to the store first,
then a fresh Snapshot is built and swapped in, then state-changed is
announced on the dispatcher.
"""

import hashlib
import hmac
from typing import Any, Dict, List, Optional
from errors import ValidationError
from events import DATA_IMPORTED, STATE_CHANGED
from logger import get_logger
from models.category import Category
from models.setting import PIN_HASH
from models.snapshot import Snapshot
from models.transaction import EnrichedTransaction, Transaction

logger = get_logger()

DEFAULT_ICON = "🧾"
UNCATEGORIZED = "Uncategorized"
PIN_LENGTH = 4
MINI_CHART_POINTS = 12


def hash_pin(pin: str) -> str:
    """Hex SHA-256 digest of a PIN, as stored in the pinHash setting."""
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


def build_lookup(categories: List[Category]) -> Dict[str, Category]:
    """Index categories by id."""
    return {category.id: category for category in categories}


def enrich(transaction: Transaction, lookup: Dict[str, Category]) -> EnrichedTransaction:
    """Attach category and subcategory display fields to a transaction.

    The icon falls back from subcategory image, to subcategory emoji, to
    category image, to category emoji, to DEFAULT_ICON.
    """
    category = lookup.get(transaction.cat_id)
    sub = category.find_subcategory(transaction.sub_id) if category and transaction.sub_id else None

    icon = (
        (sub.image if sub else "")
        or (sub.emoji if sub else "")
        or (category.image if category else "")
        or (category.emoji if category else "")
        or DEFAULT_ICON
    )

    return EnrichedTransaction.from_transaction(
        transaction,
        cat_name=category.name if category else UNCATEGORIZED,
        cat_emoji=category.emoji if category else "",
        cat_image=category.image if category else "",
        sub_name=sub.name if sub else "",
        sub_emoji=sub.emoji if sub else "",
        sub_image=sub.image if sub else "",
        icon=icon,
    )


class StateCache:
    """Maintains the enriched Snapshot for one store.

    Callers are expected to let each mutating call finish before issuing the
    next; no lock is taken.

    Args:
        categories: CategoryService.
        transactions: TransactionService.
        settings: SettingService.
        backups: BackupService.
        dispatcher: Dispatcher used for announcements.
    """

    def __init__(self, categories, transactions, settings, backups, dispatcher):
        self.categories = categories
        self.transactions = transactions
        self.settings = settings
        self.backups = backups
        self.dispatcher = dispatcher
        self._snapshot = Snapshot()
        self._lookup: Dict[str, Category] = {}

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def get_snapshot(self) -> Snapshot:
        return self._snapshot

    def load_snapshot(self) -> Snapshot:
        """Rebuild the Snapshot from all three collections.

        Returns:
            The new Snapshot.
        """
        categories = self.categories.find_all()
        transactions = self.transactions.find_all()
        settings = self.settings.find_all()

        lookup = build_lookup(categories)
        self._swap(
            Snapshot(
                transactions=[enrich(t, lookup) for t in transactions],
                categories=categories,
                settings=settings,
                pin_hash=settings.get(PIN_HASH),
            ),
            lookup,
        )
        logger.debug(
            f"Loaded snapshot: {len(transactions)} transactions, "
            f"{len(categories)} categories, {len(settings)} settings"
        )
        return self._snapshot

    def refresh_transactions(self) -> Snapshot:
        """Re-read transactions and enrich them against the cached categories."""
        current = self._snapshot
        transactions = self.transactions.find_all()
        self._swap(
            Snapshot(
                transactions=[enrich(t, self._lookup) for t in transactions],
                categories=current.categories,
                settings=current.settings,
                pin_hash=current.pin_hash,
            ),
            self._lookup,
        )
        return self._snapshot

    def refresh_categories(self) -> Snapshot:
        """Re-read categories and re-enrich every cached transaction.

        Display fields of categories may have changed, so the transaction
        view is always rebuilt together with the category list.
        """
        current = self._snapshot
        categories = self.categories.find_all()
        lookup = build_lookup(categories)
        self._swap(
            Snapshot(
                transactions=[enrich(t.to_transaction(), lookup) for t in current.transactions],
                categories=categories,
                settings=current.settings,
                pin_hash=current.pin_hash,
            ),
            lookup,
        )
        return self._snapshot

    def refresh_settings(self) -> Snapshot:
        current = self._snapshot
        settings = self.settings.find_all()
        self._swap(
            Snapshot(
                transactions=current.transactions,
                categories=current.categories,
                settings=settings,
                pin_hash=settings.get(PIN_HASH),
            ),
            self._lookup,
        )
        return self._snapshot

    def publish(self) -> None:
        """Announce the current Snapshot on state-changed."""
        self.dispatcher.emit(STATE_CHANGED, self._snapshot)

    # Transactions

    def add_transaction(self, transaction: Transaction) -> EnrichedTransaction:
        """Store a new transaction and return its enriched form."""
        stored = self.transactions.create(transaction)
        self.refresh_transactions()
        self.publish()
        return enrich(stored, self._lookup)

    def update_transaction(self, transaction_id: str, **fields: Any) -> EnrichedTransaction:
        """Merge fields onto a stored transaction and return its enriched form."""
        stored = self.transactions.update(transaction_id, **fields)
        self.refresh_transactions()
        self.publish()
        return enrich(stored, self._lookup)

    def delete_transaction(self, transaction_id: str) -> EnrichedTransaction:
        """Delete a transaction and return the enriched form of the removed record."""
        removed = self.transactions.delete(transaction_id)
        self.refresh_transactions()
        self.publish()
        return enrich(removed, self._lookup)

    # Categories

    def add_category(self, category: Category) -> Category:
        stored = self.categories.create(category)
        self.refresh_categories()
        self.publish()
        return stored

    def update_category(self, category_id: str, **fields: Any) -> Category:
        stored = self.categories.update(category_id, **fields)
        self.refresh_categories()
        self.publish()
        return stored

    def delete_category(self, category_id: str, force: bool = False) -> int:
        """Delete a category, cascading to its transactions when forced.

        Returns:
            Number of transactions removed with the category.
        """
        removed = self.categories.delete(category_id, force=force)
        self.refresh_categories()
        if removed:
            self.refresh_transactions()
        self.publish()
        return removed

    # Settings

    def save_setting(self, key: str, value: Any) -> None:
        self.settings.set(key, value)
        self.refresh_settings()
        self.publish()

    def set_pin_hash(self, pin_hash: Optional[str]) -> None:
        self.save_setting(PIN_HASH, pin_hash)

    def set_pin(self, pin: str) -> None:
        """Hash a PIN and store it as pinHash.

        Raises:
            ValidationError: If the PIN is not exactly four digits.
        """
        if not isinstance(pin, str) or len(pin) != PIN_LENGTH or not (pin.isascii() and pin.isdigit()):
            raise ValidationError("pin", f"must be {PIN_LENGTH} digits")
        self.set_pin_hash(hash_pin(pin))

    def verify_pin(self, pin: str) -> bool:
        """Check a PIN against the cached pinHash; False when no PIN is set."""
        stored = self._snapshot.pin_hash
        if not stored or not isinstance(pin, str):
            return False
        return hmac.compare_digest(hash_pin(pin), stored)

    # Backups

    def import_backup(self, payload: Any, clear_existing: bool = False):
        """Import a backup, reload the Snapshot and announce it.

        Returns:
            ImportSummary from the backup service.
        """
        summary = self.backups.import_data(payload, clear_existing=clear_existing)
        self.load_snapshot()
        self.publish()
        self.dispatcher.emit(DATA_IMPORTED, summary)
        return summary

    # Read helpers

    def transactions_for_month(self, year: int, month: int) -> List[EnrichedTransaction]:
        """Cached transactions dated in the given month, newest first."""
        prefix = f"{year:04d}-{month:02d}"
        matching = [t for t in self._snapshot.transactions if (t.date or "").startswith(prefix)]
        return sorted(matching, key=lambda t: t.date, reverse=True)

    def _swap(self, snapshot: Snapshot, lookup: Dict[str, Category]) -> None:
        self._snapshot = snapshot
        self._lookup = lookup


def group_by_date(transactions: List[EnrichedTransaction]) -> List[dict]:
    """Group transactions by calendar day, newest day first.

    Returns:
        List of {"date", "items", "total"} dictionaries.
    """
    groups: Dict[str, dict] = {}
    for transaction in transactions:
        key = (transaction.date or "")[:10]
        group = groups.setdefault(key, {"date": key, "items": [], "total": 0.0})
        group["items"].append(transaction)
        group["total"] += float(transaction.amount or 0)
    return sorted(groups.values(), key=lambda g: g["date"], reverse=True)


def compute_top_category(transactions: List[EnrichedTransaction]) -> Optional[dict]:
    """Category name with the highest total.

    Transactions are grouped by display name; ties keep the first name seen.

    Returns:
        {"name", "value"}, or None for an empty list.
    """
    totals: Dict[str, float] = {}
    for transaction in transactions:
        name = transaction.cat_name or UNCATEGORIZED
        totals[name] = totals.get(name, 0) + float(transaction.amount or 0)

    top = None
    for name, value in totals.items():
        if top is None or value > top["value"]:
            top = {"name": name, "value": value}
    return top


def compute_mini_chart(
    transactions: List[EnrichedTransaction], max_points: int = MINI_CHART_POINTS
) -> List[float]:
    """Per-day totals for a sparkline.

    Days are taken in the order they first appear (newest first for the
    month view), capped at max_points, then reversed so the oldest day of the
    window comes first.
    """
    by_day: Dict[str, float] = {}
    for transaction in transactions:
        key = (transaction.date or "")[:10]
        by_day[key] = by_day.get(key, 0) + float(transaction.amount or 0)
    return list(by_day.values())[:max_points][::-1]
