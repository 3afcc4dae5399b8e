from dataclasses import dataclass, asdict
from typing import Optional


@dataclass
class Transaction:
    id: str  # uuid4 unless supplied by the caller
    date: str  # ISO date, e.g. "2025-12-28"
    amount: float  # always positive
    cat_id: str
    note: str = ""
    sub_id: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert transaction to the export representation."""
        return {
            "id": self.id,
            "date": self.date,
            "amount": self.amount,
            "note": self.note,
            "catId": self.cat_id,
            "subId": self.sub_id,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        """Build a transaction from its export representation.

        Values are taken as-is; validation happens in the service layer.
        """
        return cls(
            id=data.get("id"),
            date=data.get("date"),
            amount=data.get("amount"),
            cat_id=data.get("catId", data.get("cat_id")),
            note=data.get("note") or "",
            sub_id=data.get("subId", data.get("sub_id")) or None,
            created_at=data.get("createdAt", data.get("created_at")),
        )


@dataclass
class EnrichedTransaction(Transaction):
    """A Transaction joined with the display fields of its category.

    Never persisted; built by the state cache at snapshot time.
    """

    cat_name: str = ""
    cat_emoji: str = ""
    cat_image: str = ""
    sub_name: str = ""
    sub_emoji: str = ""
    sub_image: str = ""
    icon: str = ""

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=self.id,
            date=self.date,
            amount=self.amount,
            cat_id=self.cat_id,
            note=self.note,
            sub_id=self.sub_id,
            created_at=self.created_at,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "catName": self.cat_name,
                "catEmoji": self.cat_emoji,
                "catImage": self.cat_image,
                "subName": self.sub_name,
                "subEmoji": self.sub_emoji,
                "subImage": self.sub_image,
                "icon": self.icon,
            }
        )
        return data

    @classmethod
    def from_transaction(cls, transaction: Transaction, **display) -> "EnrichedTransaction":
        return cls(**asdict(transaction), **display)
