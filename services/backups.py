"""Backup service: JSON export and atomic import of the whole store."""

import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import pydantic
from pydantic import BaseModel, ConfigDict
from errors import ImportMalformedError
from logger import get_logger
from models.category import Category, Subcategory, slugify
from models.setting import Setting
from models.transaction import Transaction

logger = get_logger()

EXPORT_VERSION = 1


# Pydantic models describing the backup envelope
class SubcategoryRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    emoji: Optional[str] = ""
    image: Optional[str] = ""


class CategoryRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    emoji: Optional[str] = ""
    image: Optional[str] = ""
    subcategories: List[SubcategoryRecord] = []

    def to_category(self) -> Category:
        return Category(
            id=self.id or "",
            name=self.name,
            emoji=self.emoji or "",
            image=self.image or "",
            subcategories=[
                Subcategory(id=s.id or "", name=s.name, emoji=s.emoji or "", image=s.image or "")
                for s in self.subcategories
            ],
        )


class TransactionRecord(BaseModel):
    """Exported transaction; enriched display fields from older exports are ignored."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    date: Optional[str] = None
    amount: Any = None
    note: Optional[str] = ""
    catId: Optional[str] = None
    subId: Optional[str] = None
    createdAt: Optional[str] = None

    def to_transaction(self) -> Transaction:
        return Transaction.from_dict(self.model_dump())


class SettingRecord(BaseModel):
    key: str
    value: Any = None


class BackupData(BaseModel):
    transactions: List[TransactionRecord] = []
    categories: List[CategoryRecord] = []
    # Older backups stored settings as a plain mapping
    settings: Union[List[SettingRecord], Dict[str, Any]] = []

    def setting_items(self) -> List[SettingRecord]:
        if isinstance(self.settings, dict):
            return [SettingRecord(key=k, value=v) for k, v in self.settings.items()]
        return list(self.settings)


class BackupEnvelope(BaseModel):
    version: int = EXPORT_VERSION
    exportedAt: Optional[str] = None
    data: BackupData


@dataclass
class ImportSummary:
    """Counts of records written by one import."""

    categories: int = 0
    categories_skipped: int = 0
    transactions: int = 0
    settings: int = 0


class BackupService:
    """Service for exporting and importing the complete store.

    Args:
        db_manager: Database manager instance for database operations.
        categories: CategoryService used for reads and duplicate-proof inserts.
        transactions: TransactionService used for reads and validated upserts.
        settings: SettingService used for reads and upserts.
        backup_dir: Default directory for backup files.
    """

    def __init__(self, db_manager, categories, transactions, settings, backup_dir: Optional[Path] = None):
        self.db_manager = db_manager
        self.categories = categories
        self.transactions = transactions
        self.settings = settings
        self.backup_dir = backup_dir

    def export(self) -> dict:
        """Export all collections.

        Returns:
            {"version", "exportedAt", "data": {"transactions", "categories", "settings"}}
        """
        with self.db_manager.connect() as conn:
            categories = self.categories._find_all(conn)
            rows = conn.execute("SELECT key FROM settings ORDER BY key").fetchall()
            settings = [
                Setting(key=row[0], value=self.settings._get(conn, row[0])).to_dict()
                for row in rows
            ]

        transactions = self.transactions.find_all()

        return {
            "version": EXPORT_VERSION,
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "data": {
                "transactions": [t.to_dict() for t in transactions],
                "categories": [c.to_dict() for c in categories],
                "settings": settings,
            },
        }

    def export_to_file(self, path: Optional[Path] = None) -> Path:
        """Write an export as pretty-printed JSON.

        Args:
            path: Target file. Defaults to spendrill-backup-YYYY-MM-DD.json in
                the configured backup directory.

        Returns:
            Path of the written file.
        """
        if path is None:
            if self.backup_dir is None:
                raise ValueError("No backup path given and no backup directory configured")
            path = self.backup_dir / f"spendrill-backup-{date.today().isoformat()}.json"

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = self.export()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        logger.info(
            f"Exported {len(payload['data']['transactions'])} transactions and "
            f"{len(payload['data']['categories'])} categories to {path}"
        )
        return path

    def import_data(self, payload: Any, clear_existing: bool = False) -> ImportSummary:
        """Import an export payload in one atomic unit.

        With clear_existing all collections are wiped first. Otherwise records
        are merged: categories only when their id is not stored yet,
        transactions upserted by id, settings upserted by key.

        Args:
            payload: Parsed export document.
            clear_existing: Replace the store content instead of merging.

        Returns:
            ImportSummary with the number of records written.

        Raises:
            ImportMalformedError: If the payload lacks a valid data envelope.
            ValidationError: If a transaction is invalid; nothing is imported.
        """
        envelope = parse_envelope(payload)
        summary = ImportSummary()

        with self.db_manager.transaction() as conn:
            if clear_existing:
                _wipe(conn)

            for record in envelope.data.categories:
                category = record.to_category()
                if self.categories._find(conn, category.id or slugify(category.name)):
                    summary.categories_skipped += 1
                    continue
                self.categories._insert_if_absent(conn, category)
                summary.categories += 1

            for record in envelope.data.transactions:
                self.transactions._write(conn, record.to_transaction(), replace=True)
                summary.transactions += 1

            for record in envelope.data.setting_items():
                self.settings._put(conn, record.key, record.value)
                summary.settings += 1

        logger.info(
            f"Imported {summary.categories} categories "
            f"({summary.categories_skipped} already present), "
            f"{summary.transactions} transactions, {summary.settings} settings"
        )
        return summary

    def read_file(self, path: Path) -> Any:
        """Read and parse a backup file without importing it.

        Raises:
            ImportMalformedError: If the file is not valid JSON.
        """
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ImportMalformedError(f"Invalid JSON in {path}: {e}") from e

    def import_file(self, path: Path, clear_existing: bool = False) -> ImportSummary:
        """Read a backup file and import it.

        Raises:
            ImportMalformedError: If the file is not valid JSON or lacks the envelope.
        """
        return self.import_data(self.read_file(path), clear_existing=clear_existing)

    def wipe_all(self) -> None:
        """Clear transactions, categories and settings in one atomic unit."""
        with self.db_manager.transaction() as conn:
            _wipe(conn)
        logger.info("Wiped all collections")


def parse_envelope(payload: Any) -> BackupEnvelope:
    """Validate a backup payload.

    Raises:
        ImportMalformedError: If the data envelope is absent or malformed.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise ImportMalformedError("Backup is missing its 'data' envelope")
    try:
        return BackupEnvelope.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ImportMalformedError(f"Malformed backup: {e}") from e


def _wipe(conn) -> None:
    conn.execute("DELETE FROM transactions")
    conn.execute("DELETE FROM subcategories")
    conn.execute("DELETE FROM categories")
    conn.execute("DELETE FROM settings")
