"""
Logging configuration utilities for the actionreplay package.

This module sets up the package-wide logging with a custom logging level so replay
progress lines stand out from library noise while still being silenced with a
single environment variable.

## Key Components

1. **ReplayLogger** - Custom logger class with a `replay_log` method
2. **configure_logging()** - Configures every actionreplay module logger
3. **Custom Logging Level** - REPLAY_LOGGING_LEVEL (35) for replay messages

## Usage Examples

```python
from actionreplay.utils.logging_config import logger

logger.replay_log("🚀 Starting replay")
```
"""

import logging
import os
from typing import Any

os.environ.setdefault("PLAYWRIGHT_LOGGING_LEVEL", "critical")

# Custom replay logging level
REPLAY_LOGGING_LEVEL: int = 35

LOGGING_ENABLED = os.getenv("ACTIONREPLAY_LOGGING_ENABLED", "true").lower() == "true"

ACTUAL_LEVEL: int = REPLAY_LOGGING_LEVEL if LOGGING_ENABLED else logging.CRITICAL + 1

FORMAT: str = "%(asctime)s - %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

logging.addLevelName(REPLAY_LOGGING_LEVEL, "ACTIONREPLAY")

PACKAGE_LOGGERS = [
    "actionreplay",
    "actionreplay.browser",
    "actionreplay.cli",
    "actionreplay.config",
    "actionreplay.events",
    "actionreplay.normalization",
    "actionreplay.replication",
    "actionreplay.resolution",
    "actionreplay.schemas",
    "actionreplay.utils",
]


class ReplayLogger(logging.Logger):
    """Logger with an extra `replay_log` method bound to REPLAY_LOGGING_LEVEL (35).

    Example:
        ```python
        from actionreplay.utils.logging_config import logger

        logger.replay_log("✅ Action act_001 succeeded")
        ```
    """

    def replay_log(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a message with the custom replay logging level.

        Args:
            msg (str): The message to log
            *args (Any): Additional arguments for string formatting
            **kwargs (Any): Additional keyword arguments for logging
        """
        if self.isEnabledFor(REPLAY_LOGGING_LEVEL):
            self._log(REPLAY_LOGGING_LEVEL, msg, args, **kwargs)


logging.setLoggerClass(ReplayLogger)


def configure_logging(enabled: bool = LOGGING_ENABLED) -> None:
    """Configure the actionreplay module loggers.

    Every package logger gets its own stream handler and stops propagating, so the
    host application's root logger configuration is left untouched.

    Args:
        enabled (bool): Whether replay logging should be emitted at all
    """
    level = REPLAY_LOGGING_LEVEL if enabled else logging.CRITICAL + 1

    for module in PACKAGE_LOGGERS:
        module_logger = logging.getLogger(module)
        module_logger.setLevel(level)
        module_logger.propagate = False

        for handler in module_logger.handlers[:]:
            module_logger.removeHandler(handler)

        if enabled:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(FORMAT, datefmt=DATE_FORMAT))
            module_logger.addHandler(handler)


configure_logging()

logger: ReplayLogger = logging.getLogger("actionreplay")  # type: ignore
