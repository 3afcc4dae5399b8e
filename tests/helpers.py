"""Helper utilities for tests."""

from models.category import Category, Subcategory
from models.transaction import Transaction


def make_category(name="Food & Dining", emoji="🍽️", subs=(), **kwargs) -> Category:
    """Build an unsaved Category; subs are (name, emoji) pairs."""
    return Category(
        id=kwargs.pop("id", ""),
        name=name,
        emoji=emoji,
        subcategories=[Subcategory(id="", name=n, emoji=e) for n, e in subs],
        **kwargs,
    )


def make_transaction(amount=120, cat_id="food_dining", date="2025-12-28", **kwargs) -> Transaction:
    """Build an unsaved Transaction."""
    return Transaction(
        id=kwargs.pop("id", None),
        date=date,
        amount=amount,
        cat_id=cat_id,
        **kwargs,
    )
