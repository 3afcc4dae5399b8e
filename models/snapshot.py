"""Snapshot model: the enriched in-memory view served by the state cache."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from models.category import Category
from models.transaction import EnrichedTransaction


@dataclass(frozen=True)
class Snapshot:
    """Enriched transactions, categories and settings at one point in time.

    Instances are replaced wholesale rather than mutated, so a reader holding
    a Snapshot always sees transactions enriched against its own categories.

    Attributes:
        transactions: Enriched transactions, in storage order.
        categories: Categories used to enrich the transactions.
        settings: All settings as a key -> value mapping.
        pin_hash: Value of the pinHash setting, or None.
    """

    transactions: List[EnrichedTransaction] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=dict)
    pin_hash: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "transactions": [t.to_dict() for t in self.transactions],
            "categories": [c.to_dict() for c in self.categories],
            "settings": dict(self.settings),
            "pinHash": self.pin_hash,
        }
