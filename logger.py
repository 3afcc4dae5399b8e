"""Logging for Spendrill.

Everything logs through the "spendrill" logger. The CLI prints its output
through the same logger, so the console handler shows bare messages while the
dated log file keeps timestamps and levels.
"""

import logging
from datetime import date
from config import Config

LOGGER_NAME = "spendrill"


def setup_logging(config: Config, console: bool = True) -> logging.Logger:
    """Attach a dated file handler and, optionally, a console handler.

    Args:
        config: Application configuration containing log settings.
        console: Also echo records to stderr.

    Returns:
        Configured logger instance.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level)
    logger.propagate = False

    # Calling twice (e.g. from tests) must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(
        config.log_dir / f"spendrill-{date.today().isoformat()}.log", encoding="utf-8"
    )
    file_handler.setLevel(config.log_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(config.log_level)
        console_handler.setFormatter(_ConsoleFormatter())
        logger.addHandler(console_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the application logger."""
    return logging.getLogger(LOGGER_NAME)


class _ConsoleFormatter(logging.Formatter):
    """Plain messages for INFO and below, level-prefixed for warnings and errors."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname} - {message}"
        return message
