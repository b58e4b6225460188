"""
Configuration for actionreplay: environment backed settings with TOML overrides.
"""

from .factory import ConfigurationFactory
from .settings import ReplaySettings
from .toml_loader import TOMLConfigLoader

__all__ = ["ConfigurationFactory", "ReplaySettings", "TOMLConfigLoader"]
