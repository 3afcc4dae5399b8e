"""Setting model for key/value preferences."""

from dataclasses import dataclass
from typing import Any

SEED_COMPLETED = "seedCompleted"
SAMPLE_DATA_LOADED = "sampleDataLoaded"
PIN_HASH = "pinHash"


@dataclass
class Setting:
    """A persisted key/value pair.

    Attributes:
        key: Setting name.
        value: Any JSON-serializable value.
    """

    key: str
    value: Any

    def to_dict(self) -> dict:
        return {"key": self.key, "value": self.value}
