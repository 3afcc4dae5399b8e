"""Transaction service for database operations."""

import math
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from dateutil.parser import isoparse
from errors import NotFoundError, ValidationError
from models.transaction import Transaction

# SQL Query Constants
_TRANSACTION_FIELDS = "id, date, amount, note, cat_id, sub_id, created_at"

_TRANSACTION_PLACEHOLDERS = (
    f"({', '.join(['?'] * len(_TRANSACTION_FIELDS.split(',')))})"
)

_UPDATABLE_FIELDS = {"date", "amount", "note", "cat_id", "sub_id"}


class TransactionService:
    """Service for managing transactions."""

    def __init__(self, db_manager):
        """Initialize the transaction service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def create(self, transaction: Transaction) -> Transaction:
        """Validate and insert a single transaction.

        A uuid4 id and a creation timestamp are assigned when missing.

        Args:
            transaction: Transaction object to insert.

        Returns:
            The stored Transaction.

        Raises:
            ValidationError: If cat_id, date or amount is invalid.
        """
        with self.db_manager.transaction() as conn:
            return self._write(conn, transaction, replace=False)

    def update(self, transaction_id: str, **fields: Any) -> Transaction:
        """Merge partial fields onto an existing transaction.

        Only the touched fields are re-validated; the rest are kept as stored.

        Args:
            transaction_id: The transaction id to update.
            **fields: Any of date, amount, note, cat_id, sub_id.

        Returns:
            The updated Transaction.

        Raises:
            ValueError: If unsupported field names are provided.
            NotFoundError: If the transaction does not exist.
            ValidationError: If a touched field is invalid.
        """
        invalid_fields = set(fields) - _UPDATABLE_FIELDS
        if invalid_fields:
            raise ValueError(f"Unsupported field names: {invalid_fields}")

        with self.db_manager.transaction() as conn:
            existing = self._find(conn, transaction_id)
            if existing is None:
                raise NotFoundError("Transaction", transaction_id)

            cleaned = _validate_fields(conn, fields)
            for name, value in fields.items():
                if name == "amount":
                    value = float(value)
                elif name == "date":
                    value = cleaned["date"]
                elif name == "note":
                    value = value or ""
                elif name == "sub_id":
                    value = value or None
                setattr(existing, name, value)

            set_clause = ", ".join(f"{name} = ?" for name in fields)
            if set_clause:
                conn.execute(
                    f"UPDATE transactions SET {set_clause} WHERE id = ?",
                    (*[getattr(existing, name) for name in fields], transaction_id),
                )
            return existing

    def delete(self, transaction_id: str) -> Transaction:
        """Delete a transaction by ID.

        Returns:
            The deleted Transaction.

        Raises:
            NotFoundError: If the transaction does not exist.
        """
        with self.db_manager.transaction() as conn:
            existing = self._find(conn, transaction_id)
            if existing is None:
                raise NotFoundError("Transaction", transaction_id)
            conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            return existing

    def find(self, transaction_id: str) -> Optional[Transaction]:
        """Get a single transaction by ID.

        Returns:
            Transaction object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            return self._find(conn, transaction_id)

    def find_all(self) -> List[Transaction]:
        """Get every transaction, in insertion order."""
        with self.db_manager.connect() as conn:
            rows = conn.execute(
                f"SELECT {_TRANSACTION_FIELDS} FROM transactions ORDER BY rowid"
            ).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def find_by_category(self, category_id: str) -> List[Transaction]:
        """Get all transactions that reference a category, newest first."""
        with self.db_manager.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE cat_id = ?
                ORDER BY date DESC, id
                """,
                (category_id,),
            ).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def find_by_date_range(self, start_date: str, end_date: str) -> List[Transaction]:
        """Get transactions within an inclusive date range.

        Args:
            start_date: Start date in ISO format (YYYY-MM-DD).
            end_date: End date in ISO format (YYYY-MM-DD).

        Returns:
            List of Transaction objects ordered by date (newest first).
        """
        with self.db_manager.connect() as conn:
            # Stored dates may carry a time part, so compare on the date prefix
            rows = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE substr(date, 1, 10) >= ? AND substr(date, 1, 10) <= ?
                ORDER BY date DESC, id
                """,
                (start_date, end_date),
            ).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def find_by_month(self, year: int, month: int) -> List[Transaction]:
        """Get transactions whose date starts with YYYY-MM.

        Args:
            year: Year (e.g., 2025).
            month: Month (1-12).

        Returns:
            List of Transaction objects ordered by date (newest first).
        """
        prefix = f"{year:04d}-{month:02d}"
        with self.db_manager.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE substr(date, 1, 7) = ?
                ORDER BY date DESC, id
                """,
                (prefix,),
            ).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def search(self, query: str) -> List[Transaction]:
        """Case-insensitive substring search over note, amount and date.

        Returns:
            Matching transactions ordered by date (newest first). An empty
            query matches nothing.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return []

        pattern = f"%{_escape_like(needle)}%"
        with self.db_manager.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_TRANSACTION_FIELDS}
                FROM transactions
                WHERE lower(note) LIKE ? ESCAPE '\\'
                   OR date LIKE ? ESCAPE '\\'
                   OR CAST(amount AS TEXT) LIKE ? ESCAPE '\\'
                ORDER BY date DESC, id
                """,
                (pattern, pattern, pattern),
            ).fetchall()
            return [self._row_to_transaction(row) for row in rows]

    def count(self) -> int:
        with self.db_manager.connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM transactions").fetchone()[0]

    def _write(self, conn, transaction: Transaction, replace: bool) -> Transaction:
        """Validate and write a transaction on an open connection.

        Args:
            conn: Connection inside an open transaction.
            transaction: Transaction to write.
            replace: Overwrite an existing record with the same id
                (last write wins) instead of failing.
        """
        cleaned = _validate_fields(
            conn,
            {
                "cat_id": transaction.cat_id,
                "date": transaction.date,
                "amount": transaction.amount,
            },
        )

        stored = Transaction(
            id=transaction.id or str(uuid.uuid4()),
            date=cleaned["date"],
            amount=float(transaction.amount),
            cat_id=transaction.cat_id,
            note=transaction.note or "",
            sub_id=transaction.sub_id or None,
            created_at=transaction.created_at
            or datetime.now(timezone.utc).isoformat(),
        )

        verb = "INSERT OR REPLACE" if replace else "INSERT"
        try:
            conn.execute(
                f"""
                {verb} INTO transactions ({_TRANSACTION_FIELDS})
                VALUES {_TRANSACTION_PLACEHOLDERS}
                """,
                (
                    stored.id,
                    stored.date,
                    stored.amount,
                    stored.note,
                    stored.cat_id,
                    stored.sub_id,
                    stored.created_at,
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValidationError("id", f"transaction {stored.id!r} already exists") from e
        return stored

    def _find(self, conn, transaction_id: str) -> Optional[Transaction]:
        row = conn.execute(
            f"SELECT {_TRANSACTION_FIELDS} FROM transactions WHERE id = ?",
            (transaction_id,),
        ).fetchone()
        if row:
            return self._row_to_transaction(row)
        return None

    def _row_to_transaction(self, row: tuple) -> Transaction:
        """Convert a database row to a Transaction object."""
        return Transaction(
            id=row[0],
            date=row[1],
            amount=row[2],
            note=row[3] or "",
            cat_id=row[4],
            sub_id=row[5],
            created_at=row[6],
        )


def _validate_fields(conn, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the given transaction fields before any write.

    Returns:
        The fields in stored form; a date is normalised by normalize_date.

    Raises:
        ValidationError: Naming the first offending field.
    """
    cleaned = dict(fields)
    if "cat_id" in fields:
        cat_id = fields["cat_id"]
        if not cat_id:
            raise ValidationError("cat_id", "a category is required")
        found = conn.execute(
            "SELECT 1 FROM categories WHERE id = ?", (cat_id,)
        ).fetchone()
        if not found:
            raise ValidationError("cat_id", f"category {cat_id!r} does not exist")

    if "date" in fields:
        cleaned["date"] = normalize_date(fields["date"])

    if "amount" in fields:
        amount = fields["amount"]
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValidationError("amount", f"{amount!r} is not a number")
        if not math.isfinite(amount) or amount <= 0:
            raise ValidationError("amount", "must be a finite number greater than zero")

    return cleaned


def normalize_date(value: Any) -> str:
    """Parse an ISO 8601 date and return it in extended form.

    Basic and week forms ("20251228", "2025-W52-7") are rewritten as
    "YYYY-MM-DD" so that month and range scans on the text column see them.
    Values with a time part keep it, as "YYYY-MM-DDTHH:MM:SS[+HH:MM]".

    Raises:
        ValidationError: If the value is empty or not an ISO date.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("date", "a date is required")
    text = value.strip()
    try:
        parsed = isoparse(text)
    except (ValueError, OverflowError) as e:
        raise ValidationError("date", f"{value!r} is not an ISO date") from e

    if "T" in text.upper() or " " in text:
        return parsed.isoformat()
    return parsed.date().isoformat()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
