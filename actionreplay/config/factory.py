"""
Configuration factory for managing settings instances.

This module provides a factory with singleton behavior that merges an optional
`actionreplay.toml` project file over environment based settings.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from actionreplay.config.settings import ReplaySettings
from actionreplay.config.toml_loader import TOMLConfigLoader
from actionreplay.replication.errors import ConfigurationError

FIELD_MAPPING: Dict[str, str] = {
    "browser.name": "browser",
    "browser.headless": "headless",
    "run.timeout_ms": "timeout_ms",
    "run.enable_timing": "enable_timing",
    "run.timing_mode": "timing_mode",
    "run.speed_multiplier": "speed_multiplier",
    "run.max_action_delay_ms": "max_action_delay_ms",
    "run.continue_on_error": "continue_on_error",
    "artifacts.screenshot_mode": "screenshot_mode",
    "artifacts.screenshots_dir": "screenshots_dir",
    "artifacts.video": "video",
    "artifacts.videos_dir": "videos_dir",
    "progress.transport": "progress_transport",
    "progress.redis_url": "redis_url",
    "progress.namespace": "channel_namespace",
    "logging.enabled": "logging_enabled",
}


class ConfigurationFactory:
    """Factory for creating and caching the settings instance."""

    _instance: Optional[ReplaySettings] = None

    @classmethod
    def get_settings(cls, config_path: Optional[Path] = None) -> ReplaySettings:
        """Get or create the settings instance.

        Args:
            config_path (Optional[Path]): TOML file to merge; `actionreplay.toml` in the
                working directory is used when present

        Returns:
            ReplaySettings: Cached settings instance

        Raises:
            ConfigurationError: If the TOML file or resulting settings are invalid
        """
        if cls._instance is None:
            cls._instance = cls._load(config_path)
        return cls._instance

    @classmethod
    def _load(cls, config_path: Optional[Path]) -> ReplaySettings:
        loader = TOMLConfigLoader(config_path)
        overrides: Dict[str, Any] = {}

        if config_path is not None or loader.exists():
            try:
                overrides = cls._convert_toml_to_pydantic(loader.load_config())
            except (FileNotFoundError, ValueError) as e:
                raise ConfigurationError(f"TOML configuration error: {e}") from e

        try:
            return ReplaySettings(**overrides)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def _convert_toml_to_pydantic(cls, toml_config: Dict[str, Any]) -> Dict[str, Any]:
        """Map flattened TOML keys onto settings field names; unknown keys are ignored."""
        return {
            FIELD_MAPPING[key]: value for key, value in toml_config.items() if key in FIELD_MAPPING
        }

    @classmethod
    def reset(cls) -> None:
        """Forget the cached settings so the next call reloads them."""
        cls._instance = None
