"""Settings service for key/value preferences."""

import json
from typing import Any, Dict
from errors import ValidationError


class SettingService:
    """Service for managing settings stored as JSON-encoded values."""

    def __init__(self, db_manager):
        """Initialize the settings service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting value, or default when the key is not stored."""
        with self.db_manager.connect() as conn:
            return self._get(conn, key, default)

    def set(self, key: str, value: Any) -> None:
        """Insert or replace a setting.

        Raises:
            ValidationError: If the key is empty or the value is not JSON-serializable.
        """
        with self.db_manager.transaction() as conn:
            self._put(conn, key, value)

    def delete(self, key: str) -> bool:
        """Delete a setting.

        Returns:
            True if the setting existed.
        """
        with self.db_manager.transaction() as conn:
            cursor = conn.execute("DELETE FROM settings WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def find_all(self) -> Dict[str, Any]:
        """Get all settings as a key -> value mapping."""
        with self.db_manager.connect() as conn:
            rows = conn.execute("SELECT key, value FROM settings ORDER BY key").fetchall()
            return {row[0]: _decode(row[1]) for row in rows}

    def _get(self, conn, key: str, default: Any = None) -> Any:
        row = conn.execute(
            "SELECT value FROM settings WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return default
        return _decode(row[0])

    def _put(self, conn, key: str, value: Any) -> None:
        if not key:
            raise ValidationError("key", "setting key cannot be empty")
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(key, f"value is not serializable: {e}")
        conn.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, encoded),
        )


def _decode(raw):
    if raw is None:
        return None
    return json.loads(raw)
