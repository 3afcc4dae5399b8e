"""Category service for database operations."""

from typing import List, Optional
from errors import ConflictError, NotFoundError, ValidationError
from logger import get_logger
from models.category import Category, Subcategory, slugify

logger = get_logger()

_CATEGORY_SELECT_FIELDS = "id, name, emoji, image"


class CategoryService:
    """Service for managing categories and their subcategories."""

    def __init__(self, db_manager):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[Category]:
        """Get all categories from the database.

        Returns:
            List of Category objects with subcategories, in creation order.
        """
        with self.db_manager.connect() as conn:
            return self._find_all(conn)

    def find(self, category_id: str) -> Optional[Category]:
        """Get a single category by ID.

        Args:
            category_id: The category slug id to find.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            return self._find(conn, category_id)

    def find_by_name(self, name: str) -> Optional[Category]:
        """Get a single category by its exact name.

        Args:
            name: The category name to find.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            row = conn.execute(
                f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories WHERE name = ?",
                (name,),
            ).fetchone()
            if row:
                return self._row_to_category(conn, row)
            return None

    def search(self, query: str) -> List[Category]:
        """Find categories whose name contains query, ignoring case.

        An empty query matches every category.
        """
        needle = (query or "").strip().casefold()
        return [c for c in self.find_all() if needle in c.name.casefold()]

    def search_subcategories(self, query: str) -> List[dict]:
        """Find subcategories across all categories whose name contains query.

        Returns:
            Subcategory dictionaries extended with categoryId, categoryName
            and categoryEmoji of their parent, in category order.
        """
        needle = (query or "").strip().casefold()
        results = []
        for category in self.find_all():
            for sub in category.subcategories:
                if needle in sub.name.casefold():
                    results.append(
                        {
                            **sub.to_dict(),
                            "categoryId": category.id,
                            "categoryName": category.name,
                            "categoryEmoji": category.emoji,
                        }
                    )
        return results

    def create(self, category: Category) -> Category:
        """Add a category unless one with the same id already exists.

        The id is derived from the name when not supplied. Adding a category
        whose id is already stored returns the stored record unchanged.

        Args:
            category: Category to add; subcategory ids are derived the same way.

        Returns:
            The stored Category (the existing one on a duplicate).

        Raises:
            ValidationError: If the name is empty.
        """
        with self.db_manager.transaction() as conn:
            return self._insert_if_absent(conn, category)

    def update(
        self,
        category_id: str,
        *,
        name: Optional[str] = None,
        emoji: Optional[str] = None,
        image: Optional[str] = None,
        subcategories: Optional[List[Subcategory]] = None,
    ) -> Category:
        """Update display fields of an existing category.

        The id stays stable when the category is renamed. When subcategories
        is given it replaces the whole subcategory list.

        Raises:
            NotFoundError: If the category does not exist.
            ValidationError: If name is given but empty.
        """
        if name is not None and not name.strip():
            raise ValidationError("name", "category name cannot be empty")

        with self.db_manager.transaction() as conn:
            existing = self._find(conn, category_id)
            if existing is None:
                raise NotFoundError("Category", category_id)

            if name is not None:
                existing.name = name.strip()
            if emoji is not None:
                existing.emoji = emoji
            if image is not None:
                existing.image = image

            conn.execute(
                "UPDATE categories SET name = ?, emoji = ?, image = ? WHERE id = ?",
                (existing.name, existing.emoji, existing.image, category_id),
            )

            if subcategories is not None:
                existing.subcategories = _normalize_subcategories(subcategories)
                conn.execute(
                    "DELETE FROM subcategories WHERE category_id = ?", (category_id,)
                )
                self._insert_subcategories(conn, category_id, existing.subcategories)

            return existing

    def add_subcategory(self, category_id: str, subcategory: Subcategory) -> Subcategory:
        """Append a subcategory, returning the existing one if its id is taken.

        Raises:
            NotFoundError: If the category does not exist.
            ValidationError: If the subcategory name is empty.
        """
        sub = _normalize_subcategories([subcategory])[0]

        with self.db_manager.transaction() as conn:
            category = self._find(conn, category_id)
            if category is None:
                raise NotFoundError("Category", category_id)

            existing = category.find_subcategory(sub.id)
            if existing is not None:
                return existing

            conn.execute(
                """
                INSERT INTO subcategories (category_id, id, name, emoji, image, position)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (category_id, sub.id, sub.name, sub.emoji, sub.image, len(category.subcategories)),
            )
            return sub

    def remove_subcategory(self, category_id: str, sub_id: str) -> bool:
        """Remove a subcategory.

        Transactions that referenced it keep their sub_id and are shown
        without subcategory details.

        Returns:
            True if the subcategory was removed, False if not found.
        """
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM subcategories WHERE category_id = ? AND id = ?",
                (category_id, sub_id),
            )
            return cursor.rowcount > 0

    def count_transactions(self, category_id: str) -> int:
        """Count transactions that reference a category."""
        with self.db_manager.connect() as conn:
            return _count_dependents(conn, category_id)

    def delete(self, category_id: str, force: bool = False) -> int:
        """Delete a category.

        Without force the delete is refused while transactions reference the
        category. With force the category, its subcategories and every
        dependent transaction are removed in one atomic unit.

        Args:
            category_id: The category id to delete.
            force: Also delete dependent transactions.

        Returns:
            Number of dependent transactions deleted.

        Raises:
            NotFoundError: If the category does not exist.
            ConflictError: If dependents exist and force is False.
        """
        with self.db_manager.transaction() as conn:
            category = self._find(conn, category_id)
            if category is None:
                raise NotFoundError("Category", category_id)

            count = _count_dependents(conn, category_id)
            if count > 0 and not force:
                raise ConflictError(category_id, count, category.name)

            cursor = conn.execute(
                "DELETE FROM transactions WHERE cat_id = ?", (category_id,)
            )
            removed = cursor.rowcount
            conn.execute(
                "DELETE FROM subcategories WHERE category_id = ?", (category_id,)
            )
            conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))

        logger.info(
            f"Deleted category '{category.name}' ({category_id}) "
            f"with {removed} transaction(s)"
        )
        return removed

    def _insert_if_absent(self, conn, category: Category) -> Category:
        """Insert a category on an open connection unless its id exists."""
        name = (category.name or "").strip()
        if not name:
            raise ValidationError("name", "category name cannot be empty")

        category_id = category.id or slugify(name)
        if not category_id:
            raise ValidationError("name", f"cannot derive an id from {name!r}")

        existing = self._find(conn, category_id)
        if existing is not None:
            logger.debug(f"Category '{category_id}' already exists, keeping stored record")
            return existing

        position = conn.execute(
            "SELECT COALESCE(MAX(position) + 1, 0) FROM categories"
        ).fetchone()[0]
        stored = Category(
            id=category_id,
            name=name,
            emoji=category.emoji or "",
            image=category.image or "",
            subcategories=_normalize_subcategories(category.subcategories),
        )
        conn.execute(
            "INSERT INTO categories (id, name, emoji, image, position) VALUES (?, ?, ?, ?, ?)",
            (stored.id, stored.name, stored.emoji, stored.image, position),
        )
        self._insert_subcategories(conn, stored.id, stored.subcategories)
        return stored

    def _insert_subcategories(self, conn, category_id: str, subcategories: List[Subcategory]):
        conn.executemany(
            """
            INSERT INTO subcategories (category_id, id, name, emoji, image, position)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (category_id, sub.id, sub.name, sub.emoji, sub.image, position)
                for position, sub in enumerate(subcategories)
            ],
        )

    def _find_all(self, conn) -> List[Category]:
        rows = conn.execute(
            f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories ORDER BY position, id"
        ).fetchall()

        subs_by_category = {}
        for sub_row in conn.execute(
            """
            SELECT category_id, id, name, emoji, image
            FROM subcategories
            ORDER BY category_id, position
            """
        ):
            subs_by_category.setdefault(sub_row[0], []).append(
                Subcategory(id=sub_row[1], name=sub_row[2], emoji=sub_row[3], image=sub_row[4])
            )

        return [
            Category(
                id=row[0],
                name=row[1],
                emoji=row[2] or "",
                image=row[3] or "",
                subcategories=subs_by_category.get(row[0], []),
            )
            for row in rows
        ]

    def _find(self, conn, category_id: str) -> Optional[Category]:
        row = conn.execute(
            f"SELECT {_CATEGORY_SELECT_FIELDS} FROM categories WHERE id = ?",
            (category_id,),
        ).fetchone()
        if row:
            return self._row_to_category(conn, row)
        return None

    def _row_to_category(self, conn, row: tuple) -> Category:
        """Convert a database row to a Category, loading its subcategories."""
        sub_rows = conn.execute(
            """
            SELECT id, name, emoji, image FROM subcategories
            WHERE category_id = ? ORDER BY position
            """,
            (row[0],),
        ).fetchall()
        return Category(
            id=row[0],
            name=row[1],
            emoji=row[2] or "",
            image=row[3] or "",
            subcategories=[
                Subcategory(id=s[0], name=s[1], emoji=s[2], image=s[3]) for s in sub_rows
            ],
        )


def _count_dependents(conn, category_id: str) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM transactions WHERE cat_id = ?", (category_id,)
    ).fetchone()[0]


def _normalize_subcategories(subcategories: List[Subcategory]) -> List[Subcategory]:
    """Derive missing subcategory ids and drop duplicate ids, keeping the first."""
    result = []
    seen = set()
    for sub in subcategories or []:
        name = (sub.name or "").strip()
        if not name:
            raise ValidationError("subcategories", "subcategory name cannot be empty")
        sub_id = sub.id or slugify(name)
        if sub_id in seen:
            continue
        seen.add(sub_id)
        result.append(
            Subcategory(id=sub_id, name=name, emoji=sub.emoji or "", image=sub.image or "")
        )
    return result
