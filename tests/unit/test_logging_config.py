import logging
from typing import Iterator, List

import pytest

from actionreplay.utils.logging_config import (
    FORMAT,
    PACKAGE_LOGGERS,
    REPLAY_LOGGING_LEVEL,
    configure_logging,
    logger,
)


class CollectingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    yield
    configure_logging()


class TestConfigureLogging:
    """Test suite for `configure_logging` and the custom replay level."""

    # ? VALID CASE
    def test_enabled_logging(self) -> None:
        configure_logging(True)

        for name in PACKAGE_LOGGERS:
            module_logger = logging.getLogger(name)
            assert module_logger.level == REPLAY_LOGGING_LEVEL
            assert module_logger.propagate is False
            assert len(module_logger.handlers) == 1
            assert isinstance(module_logger.handlers[0], logging.StreamHandler)
            assert module_logger.handlers[0].formatter._fmt == FORMAT

        assert logger.isEnabledFor(REPLAY_LOGGING_LEVEL)
        assert not logger.isEnabledFor(logging.WARNING)

    # ? VALID CASE
    def test_disabled_logging(self) -> None:
        configure_logging(False)

        for name in PACKAGE_LOGGERS:
            module_logger = logging.getLogger(name)
            assert module_logger.handlers == []
            assert not module_logger.isEnabledFor(logging.CRITICAL)

    # ? VALID CASE
    def test_reconfiguring_does_not_stack_handlers(self) -> None:
        configure_logging(True)
        configure_logging(True)

        assert len(logging.getLogger("actionreplay").handlers) == 1

    # ? VALID CASE
    def test_replay_log_uses_the_custom_level(self) -> None:
        configure_logging(True)
        collected = CollectingHandler()
        logger.addHandler(collected)

        logger.replay_log("🚀 Starting replay")
        logger.info("below the replay level")

        assert [record.getMessage() for record in collected.records] == ["🚀 Starting replay"]
        assert collected.records[0].levelname == "ACTIONREPLAY"
