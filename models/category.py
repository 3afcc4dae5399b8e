"""Category model for transaction categorization."""

import re
from dataclasses import dataclass, field
from typing import List


def slugify(name: str) -> str:
    """Derive a stable id from a display name.

    Example: "Restaurants & Cafes" -> "restaurants_cafes".
    """
    return re.sub(r"[^a-z0-9]+", "_", (name or "").lower()).strip("_")


@dataclass
class Subcategory:
    """A subcategory nested inside a Category.

    Attributes:
        id: Slug id, unique within its parent category.
        name: Display name.
        emoji: Display emoji, may be empty.
        image: Optional data URI, empty when unset.
    """

    id: str
    name: str
    emoji: str = ""
    image: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "emoji": self.emoji,
            "image": self.image,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Subcategory":
        name = data.get("name") or ""
        return cls(
            id=data.get("id") or slugify(name),
            name=name,
            emoji=data.get("emoji") or "",
            image=data.get("image") or "",
        )


@dataclass
class Category:
    """Represents a spending category with its subcategories.

    Attributes:
        id: Slug id derived from the name unless supplied explicitly.
        name: Category name.
        emoji: Display emoji, may be empty.
        image: Optional data URI, empty when unset.
        subcategories: Ordered list of subcategories.
    """

    id: str
    name: str
    emoji: str = ""
    image: str = ""
    subcategories: List[Subcategory] = field(default_factory=list)

    def find_subcategory(self, sub_id):
        """Return the subcategory with the given id, or None."""
        for sub in self.subcategories:
            if sub.id == sub_id:
                return sub
        return None

    def to_dict(self) -> dict:
        """Convert category to the export representation."""
        return {
            "id": self.id,
            "name": self.name,
            "emoji": self.emoji,
            "image": self.image,
            "subcategories": [sub.to_dict() for sub in self.subcategories],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Category":
        name = data.get("name") or ""
        return cls(
            id=data.get("id") or slugify(name),
            name=name,
            emoji=data.get("emoji") or "",
            image=data.get("image") or "",
            subcategories=[
                Subcategory.from_dict(sub) for sub in data.get("subcategories") or []
            ],
        )
