import logging

from logger import get_logger, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_writes_dated_log_file(self, test_config):
        logger = setup_logging(test_config, console=False)
        try:
            logger.info("store opened")
            for handler in logger.handlers:
                handler.flush()

            files = list(test_config.log_dir.glob("spendrill-*.log"))
            assert len(files) == 1
            assert "INFO - store opened" in files[0].read_text(encoding="utf-8")
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    def test_repeated_setup_does_not_stack_handlers(self, test_config):
        logger = setup_logging(test_config)
        setup_logging(test_config)
        try:
            assert len(logger.handlers) == 2
            assert get_logger() is logger
            assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
