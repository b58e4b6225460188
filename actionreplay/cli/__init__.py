"""
Command-line interface for actionreplay.
"""

from .main import app

__all__ = ["app"]
