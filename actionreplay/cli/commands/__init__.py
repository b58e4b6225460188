"""
actionreplay CLI commands package.

Each module implements one command of the `actionreplay` command-line interface.
"""

from . import info, normalize, resolve, run, validate

__all__ = ["info", "normalize", "resolve", "run", "validate"]
