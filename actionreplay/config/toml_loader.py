"""
TOML configuration loader for actionreplay.

```toml
[run]
timing_mode = "fast"
continue_on_error = true

[browser]
name = "firefox"
headless = false

[artifacts]
screenshot_mode = "always"

[progress]
transport = "redis"
redis_url = "redis://localhost:6379/1"
```
"""

from pathlib import Path
from typing import Any, Dict, Optional

import tomli

DEFAULT_CONFIG_FILE = "actionreplay.toml"


class TOMLConfigLoader:
    """Loader for TOML-based configuration files.

    Nested tables are flattened into dotted keys, e.g. `[run] timeout_ms = 5000`
    becomes `{"run.timeout_ms": 5000}`.
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize TOML config loader.

        Args:
            config_path: Path to TOML configuration file. Defaults to 'actionreplay.toml'
        """
        self.config_path = Path(config_path) if config_path else Path(DEFAULT_CONFIG_FILE)

    def exists(self) -> bool:
        return self.config_path.exists()

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from TOML file.

        Returns:
            Flattened dictionary containing configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If TOML file is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        return self._flatten_config(self._load_toml_file())

    def _load_toml_file(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, "rb") as f:
                return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML configuration file: {e}")

    def _flatten_config(self, config: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
        flattened: Dict[str, Any] = {}

        for key, value in config.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                flattened.update(self._flatten_config(value, full_key))
            else:
                flattened[full_key] = value

        return flattened
