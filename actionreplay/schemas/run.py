"""
Run option and run result models.

`RunOptions` configures a single replay invocation and `RunResult` is what the engine
returns once the run reaches a terminal state. Both exist only for the lifetime of
one run.

## Usage Examples

```python
from actionreplay.schemas.run import RunOptions, TimingMode

options = RunOptions(timing_mode=TimingMode.FAST, continue_on_error=True)
result = await ReplayEngine(page).execute(recording, options)
print(result.status, result.actions_executed, result.actions_failed)
```
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from actionreplay.utils.cancellation import AbortSignal


class BrowserType(str, Enum):
    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class TimingMode(str, Enum):
    """Preset replay speeds."""

    REALISTIC = "realistic"
    FAST = "fast"
    INSTANT = "instant"


# recorded gaps are multiplied by these
TIMING_MODE_MULTIPLIERS = {
    TimingMode.REALISTIC: 1.0,
    TimingMode.FAST: 0.25,
    TimingMode.INSTANT: 0.0,
}


class ScreenshotMode(str, Enum):
    ON_FAILURE = "on-failure"
    ALWAYS = "always"
    NEVER = "never"


class RunStatus(str, Enum):
    """Overall outcome of a run."""

    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


class RunModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunOptions(RunModel):
    """Options for a single replay run.

    Attributes:
        browser (BrowserType): Browser engine to launch
        headless (bool): Run the browser without a window
        video (bool): Record a video of the run
        screenshot (bool): Legacy toggle, equivalent to `screenshot_mode=always`
        timeout (int): Upper bound in ms for resolving and dispatching one action
        enable_timing (bool): Reproduce recorded gaps between actions
        timing_mode (TimingMode): Speed preset used when `speed_multiplier` is 1.0
        speed_multiplier (float): Explicit multiplier applied to recorded gaps
        max_action_delay (int): Upper bound in ms for a single inter-action delay
        continue_on_error (bool): Keep going after an action fails
        abort_signal (Optional[AbortSignal]): Cancellation token for the run
        screenshot_mode (ScreenshotMode): When to capture screenshots
        run_id (Optional[str]): Run id; generated when missing
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, arbitrary_types_allowed=True
    )

    browser: BrowserType = BrowserType.CHROMIUM
    headless: bool = True
    video: bool = False
    screenshot: bool = False
    timeout: int = Field(default=30_000, gt=0)
    enable_timing: bool = True
    timing_mode: TimingMode = TimingMode.REALISTIC
    speed_multiplier: float = Field(default=1.0, ge=0)
    max_action_delay: int = Field(default=30_000, ge=0)
    continue_on_error: bool = False
    abort_signal: Optional[AbortSignal] = Field(default=None, exclude=True)
    screenshot_mode: ScreenshotMode = ScreenshotMode.ON_FAILURE
    run_id: Optional[str] = None

    @field_validator("speed_multiplier")
    @classmethod
    def validate_speed_multiplier(cls, v: float) -> float:
        if v > 100:
            raise ValueError("speed_multiplier must not exceed 100")
        return v

    @property
    def effective_multiplier(self) -> float:
        """Multiplier applied to recorded gaps; an explicit override wins over the preset."""
        if self.speed_multiplier != 1.0:
            return self.speed_multiplier
        return TIMING_MODE_MULTIPLIERS[TimingMode(self.timing_mode)]

    @property
    def timing_active(self) -> bool:
        return self.enable_timing and self.effective_multiplier > 0

    @property
    def effective_screenshot_mode(self) -> ScreenshotMode:
        if self.screenshot and self.screenshot_mode == ScreenshotMode.ON_FAILURE:
            return ScreenshotMode.ALWAYS
        return ScreenshotMode(self.screenshot_mode)


class ActionErrorDetail(RunModel):
    """One failed action inside a RunResult."""

    action_id: str
    action_type: str
    action_index: int
    error: str
    timestamp: int
    attempted_strategies: List[str] = Field(default_factory=list)
    screenshot: Optional[str] = None


class SkippedAction(RunModel):
    action_id: str
    action_type: str
    action_index: int
    reason: str


class RunResult(RunModel):
    """Terminal outcome of a run.

    `actions_executed` counts successful actions, `actions_failed` failed ones, and
    `skipped_actions` the actions that were skipped. Actions never attempted because
    the run stopped early appear in none of the three.
    """

    run_id: str
    status: RunStatus
    duration: int
    actions_total: int
    actions_executed: int = 0
    actions_failed: int = 0
    errors: List[ActionErrorDetail] = Field(default_factory=list)
    skipped_actions: List[SkippedAction] = Field(default_factory=list)
    video: Optional[str] = None
    screenshots: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS
