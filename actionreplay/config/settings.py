"""
Configuration settings for actionreplay using Pydantic Settings.

Settings come from three layers, later ones winning: code defaults, environment
variables / `.env` (prefixed with `ACTIONREPLAY_`), and an optional
`actionreplay.toml` project file loaded through `ConfigurationFactory`.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from actionreplay.events.types import DEFAULT_CHANNEL_NAMESPACE, TransportType
from actionreplay.schemas.run import BrowserType, RunOptions, ScreenshotMode, TimingMode


class ReplaySettings(BaseSettings):
    """Main configuration settings for replay runs.

    This class provides centralized configuration with:
    - Type-safe values with validation
    - Environment variable and `.env` support
    - TOML project file overrides
    - Conversion into per-run `RunOptions`
    """

    model_config = SettingsConfigDict(
        env_prefix="ACTIONREPLAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Browser
    browser: BrowserType = Field(default=BrowserType.CHROMIUM, description="Browser engine")
    headless: bool = Field(default=True, description="Run the browser without a window")

    # Run behaviour
    timeout_ms: int = Field(
        default=30_000, gt=0, description="Upper bound for resolving and dispatching one action"
    )
    enable_timing: bool = Field(default=True, description="Reproduce recorded pacing")
    timing_mode: TimingMode = Field(default=TimingMode.REALISTIC, description="Speed preset")
    speed_multiplier: float = Field(
        default=1.0, ge=0.0, le=100.0, description="Explicit multiplier applied to recorded gaps"
    )
    max_action_delay_ms: int = Field(
        default=30_000, ge=0, description="Upper bound for one inter-action delay"
    )
    continue_on_error: bool = Field(default=False, description="Keep going after a failed action")

    # Artifacts
    screenshot_mode: ScreenshotMode = Field(
        default=ScreenshotMode.ON_FAILURE, description="When screenshots are captured"
    )
    screenshots_dir: Path = Field(default=Path("./screenshots"), description="Screenshot root")
    video: bool = Field(default=False, description="Record a video of each run")
    videos_dir: Path = Field(default=Path("./videos"), description="Video directory")

    # Progress
    progress_transport: TransportType = Field(
        default=TransportType.MEMORY, description="Transport carrying progress events"
    )
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    channel_namespace: str = Field(
        default=DEFAULT_CHANNEL_NAMESPACE, description="Prefix of progress channel names"
    )

    logging_enabled: bool = Field(default=True, description="Emit replay log lines")

    @field_validator("channel_namespace")
    @classmethod
    def validate_channel_namespace(cls, v: str) -> str:
        if not v or ":" in v:
            raise ValueError("channel_namespace must be non-empty and must not contain ':'")
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError(f"Unsupported Redis URL: {v}")
        return v

    def to_run_options(self, run_id: Optional[str] = None, **overrides: Any) -> RunOptions:
        """Build per-run options from these settings.

        Args:
            run_id (Optional[str]): Run id to carry
            **overrides (Any): RunOptions fields taking precedence over settings

        Returns:
            RunOptions: Options for one run
        """
        values: Dict[str, Any] = {
            "browser": self.browser,
            "headless": self.headless,
            "video": self.video,
            "timeout": self.timeout_ms,
            "enable_timing": self.enable_timing,
            "timing_mode": self.timing_mode,
            "speed_multiplier": self.speed_multiplier,
            "max_action_delay": self.max_action_delay_ms,
            "continue_on_error": self.continue_on_error,
            "screenshot_mode": self.screenshot_mode,
            "run_id": run_id,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return RunOptions(**values)
