"""
Utility functions and classes for actionreplay.

This module provides **utility functions and classes** for:
- Logging configuration and setup
- Cooperative cancellation of runs
- Screenshot capture with element highlighting

Recording loading and analysis live in `actionreplay.utils.recording_loader` and
`actionreplay.utils.recording_analyzer`.
"""

from .logging_config import ReplayLogger, configure_logging, logger
from .cancellation import AbortSignal, abortable_sleep, await_with_abort
from .screenshot_manager import ScreenshotManager

__all__ = [
    "ReplayLogger",
    "configure_logging",
    "logger",
    "AbortSignal",
    "abortable_sleep",
    "await_with_abort",
    "ScreenshotManager",
]
