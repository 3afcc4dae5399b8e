"""Base services container for dependency injection."""

from config import Config
from db.manager import DatabaseManager
from events import Dispatcher
from logger import get_logger

logger = get_logger()


class Services:
    """Container for all application services.

    Each container owns its own dispatcher, state cache and worker client, so
    several independent stores can coexist in one process (e.g. in tests).

    Args:
        config: Application configuration object.
        db_manager: Optional database manager for testing. If provided, config is ignored.
        dispatcher: Optional dispatcher to share with other components.
        stats_executor: Optional executor for the stats worker (testing).
    """

    def __init__(self, config: Config, db_manager=None, dispatcher=None, stats_executor=None):
        """Initialize services with configuration.

        Args:
            config: Config object containing application configuration.
            db_manager: Optional database manager for dependency injection (testing).
                       If None, creates DatabaseManager from config.
            dispatcher: Optional Dispatcher; a new one is created if None.
            stats_executor: Optional executor passed to the StatsWorker.
        """
        self.config = config
        self.db_manager = db_manager or DatabaseManager(config)
        self.events = dispatcher or Dispatcher()

        # Lazy import to avoid circular dependencies
        from services.categories import CategoryService
        from services.transactions import TransactionService
        from services.settings import SettingService
        from services.backups import BackupService
        from services.seed import SeedService
        from services.state import StateCache
        from services.stats import StatsWorker

        self.categories = CategoryService(self.db_manager)
        self.transactions = TransactionService(self.db_manager)
        self.settings = SettingService(self.db_manager)
        self.backups = BackupService(
            self.db_manager,
            self.categories,
            self.transactions,
            self.settings,
            backup_dir=config.backup_dir,
        )
        self.seed = SeedService(
            self.db_manager, self.categories, self.transactions, self.settings
        )
        self.state = StateCache(
            self.categories, self.transactions, self.settings, self.backups, self.events
        )
        self.stats = StatsWorker(self.events, executor=stats_executor)

    def open(self):
        """Migrate the store, seed it if it was just created, and load the snapshot.

        Returns:
            The loaded Snapshot.
        """
        created = self.db_manager.open()
        if created and self.config.seed_defaults:
            self.seed.seed_defaults()
        return self.state.load_snapshot()

    def close(self) -> None:
        self.stats.close()
