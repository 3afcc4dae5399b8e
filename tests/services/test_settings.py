import pytest

from errors import ValidationError


class TestSettingService:
    """Tests for SettingService."""

    def test_get_missing_returns_default(self, services):
        assert services.settings.get("theme") is None
        assert services.settings.get("theme", "midnight") == "midnight"

    def test_set_and_get_roundtrip_structured_value(self, services):
        """Test that structured values survive storage."""
        services.settings.set("backupDirName", {"name": "backup", "paths": ["a", "b"]})

        assert services.settings.get("backupDirName") == {"name": "backup", "paths": ["a", "b"]}

    def test_set_overwrites(self, services):
        services.settings.set("theme", "aqua")
        services.settings.set("theme", "forest-mint")

        assert services.settings.get("theme") == "forest-mint"
        assert services.settings.find_all() == {"theme": "forest-mint"}

    def test_set_false_is_stored(self, services):
        services.settings.set("seedCompleted", False)

        assert services.settings.get("seedCompleted", True) is False

    def test_set_unserializable_value_raises(self, services):
        """Test that non-serializable handles are rejected before writing."""
        with pytest.raises(ValidationError, match="backupDir"):
            services.settings.set("backupDir", object())

        assert services.settings.find_all() == {}

    def test_set_empty_key_raises(self, services):
        with pytest.raises(ValidationError, match="key"):
            services.settings.set("", 1)

    def test_delete(self, services):
        services.settings.set("theme", "aqua")

        assert services.settings.delete("theme") is True
        assert services.settings.delete("theme") is False
        assert services.settings.get("theme") is None
