"""Shared pytest fixtures for all tests."""

import pytest

from config import Config
from db.manager import DatabaseManager
from services.base import Services


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration pointing to a temporary database.

    Args:
        tmp_path: pytest tmp_path fixture for temporary directory.

    Returns:
        Config: Test configuration object.
    """
    return Config(
        base_dir=tmp_path / "spendrill",
        db_data_dir=tmp_path / "spendrill" / "db",
        db_filename="test.db",
        log_level="DEBUG",
        log_dir=tmp_path / "spendrill" / "logs",
        backup_dir=tmp_path / "spendrill" / "backups",
        seed_defaults=False,
    )


@pytest.fixture
def db_manager(test_config):
    """Create a DatabaseManager on a temporary file with all migrations applied.

    Returns:
        DatabaseManager: Database manager with schema ready.
    """
    manager = DatabaseManager(test_config)
    manager.migrate()
    return manager


@pytest.fixture
def services(test_config, db_manager):
    """Create a Services container with an empty, migrated test database.

    Yields:
        Services: Services container for testing.
    """
    services = Services(test_config, db_manager=db_manager)
    services.state.load_snapshot()
    yield services
    services.close()
