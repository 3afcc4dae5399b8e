"""Database manager for SQLite connections, atomic units and migrations."""

import sqlite3
from contextlib import contextmanager
from typing import List, Set
from config import Config, get_migrations_dir
from errors import StorageError
from logger import get_logger

logger = get_logger()


class DatabaseManager:
    """Manages database connections, paths and schema versions.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        """Initialize the database manager.

        Args:
            config: Config object containing database configuration.
        """
        self.config = config

    @contextmanager
    def connect(self):
        """Get a database connection with automatic cleanup.

        Engine errors raised while the connection is in use are logged and
        re-raised as StorageError.

        Yields:
            sqlite3.Connection: Database connection.
        """
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(db_path)
        except sqlite3.Error as e:
            logger.error(f"Could not open database {db_path}: {e}")
            raise StorageError(f"Could not open database: {e}") from e

        try:
            yield conn
        except sqlite3.Error as e:
            logger.error(f"Storage failure on {db_path}: {e}", exc_info=True)
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """Run a block of statements as one atomic unit.

        The write lock is taken up front (BEGIN IMMEDIATE). The unit is
        committed when the block exits normally and rolled back when it
        raises, whatever the exception type.

        Yields:
            sqlite3.Connection: Connection inside an open transaction.
        """
        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def get_db_path(self):
        """Get the current database path.

        Returns:
            Path: Path to the database file.
        """
        return self.config.db_path

    def get_migrations_dir(self):
        """Get the migrations directory path.

        Returns:
            Path: Path to the migrations directory.
        """
        return get_migrations_dir()

    def get_available_migrations(self) -> List[str]:
        """List migration files shipped with the code, in apply order."""
        migrations_dir = self.get_migrations_dir()
        if not migrations_dir.exists():
            return []
        return sorted(path.name for path in migrations_dir.glob("*.sql"))

    def get_applied_migrations(self) -> Set[str]:
        """List migration files already applied to this database."""
        with self.connect() as conn:
            _init_schema_migrations_table(conn)
            return _applied(conn)

    def schema_version(self) -> int:
        """Get the schema version, i.e. the number of applied migrations."""
        return len(self.get_applied_migrations())

    def migrate(self) -> List[str]:
        """Apply pending migrations in order.

        Returns:
            Names of the migration files applied by this call.
        """
        applied_now = []
        with self.connect() as conn:
            _init_schema_migrations_table(conn)
            applied = _applied(conn)
            pending = [m for m in self.get_available_migrations() if m not in applied]

            if not pending:
                logger.debug("No pending migrations.")
                return applied_now

            logger.info(f"Applying {len(pending)} migration(s)...")
            for migration in pending:
                _apply_migration(conn, self.get_migrations_dir() / migration)
                applied_now.append(migration)

        return applied_now

    def open(self) -> bool:
        """Bring the database up to the current schema version.

        Returns:
            True if the database was created by this call (no migration had
            ever been applied), False if an existing store was reopened.
        """
        created = self.schema_version() == 0
        self.migrate()
        if created:
            logger.info(f"Created new store at {self.get_db_path()}")
        return created


def _init_schema_migrations_table(conn):
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            migration_file TEXT PRIMARY KEY,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()


def _applied(conn) -> Set[str]:
    cursor = conn.execute(
        "SELECT migration_file FROM schema_migrations ORDER BY migration_file"
    )
    return {row[0] for row in cursor.fetchall()}


def _apply_migration(conn, migration_path):
    with open(migration_path, "r") as f:
        sql = f.read()

    try:
        conn.executescript(sql)
        conn.execute(
            "INSERT INTO schema_migrations (migration_file) VALUES (?)",
            (migration_path.name,),
        )
        conn.commit()
        logger.info(f"Applied migration: {migration_path.name}")
    except sqlite3.Error as e:
        conn.rollback()
        logger.error(f"Error applying migration {migration_path.name}: {e}")
        raise
