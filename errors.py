"""Exception hierarchy for the Spendrill data layer.

Validation, NotFound and Conflict errors are contract violations raised before
any write takes place. StorageError wraps failures of the SQLite engine and is
always logged by the layer that raises it. ImportMalformedError aborts a
backup import as a whole.
"""

from typing import Any, Optional


class SpendrillError(Exception):
    """Base exception for all data layer errors."""


class ValidationError(SpendrillError):
    """Raised when a required field is missing or invalid.

    Attributes:
        field: Name of the offending field.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class NotFoundError(SpendrillError):
    """Raised when an operation targets an id absent from the store."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id!r} not found")


class ConflictError(SpendrillError):
    """Raised when a category delete is blocked by dependent transactions."""

    def __init__(self, category_id: str, count: int, name: Optional[str] = None):
        self.category_id = category_id
        self.count = count
        label = f"'{name}' ({category_id})" if name else f"'{category_id}'"
        super().__init__(
            f"Category {label} is used by {count} transaction(s); "
            "delete with force to remove them too"
        )


class StorageError(SpendrillError):
    """Raised when the underlying storage engine fails."""


class ImportMalformedError(SpendrillError):
    """Raised when a backup payload is unparseable or lacks its data envelope."""
