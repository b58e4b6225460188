"""
Pydantic models for recordings, runs, progress events and recording analysis.

## Key Components

1. **Recording / Action** - The recorder's document and its action variants
2. **RunOptions / RunResult** - Input and output of a single replay run
3. **ProgressEvent** - Discriminated union of progress messages
4. **RecordingAnalysis** - Static report produced by `RecordingAnalyzer`
"""

from .recording import (
    Action,
    BaseAction,
    CheckpointAction,
    ClickAction,
    ContentFingerprint,
    ContentSignature,
    HoverAction,
    InputAction,
    KeypressAction,
    LegacySelector,
    ModalLifecycleAction,
    NavigationAction,
    NavigationIntent,
    Recording,
    ScrollAction,
    SelectAction,
    SelectorStrategy,
    SelectorWithMetadata,
    SubmitAction,
    Viewport,
    VisualHints,
)
from .run import (
    ActionErrorDetail,
    BrowserType,
    RunOptions,
    RunResult,
    RunStatus,
    ScreenshotMode,
    SkippedAction,
    TimingMode,
)
from .progress import (
    ActionFailedEvent,
    ActionSkippedEvent,
    ActionStartedEvent,
    ActionSuccessEvent,
    ProgressEvent,
    ProgressEventType,
    RunCompletedEvent,
    RunErrorEvent,
    RunStartedEvent,
    decode_progress_event,
)
from .analysis import RecordingAnalysis

__all__ = [
    "Action",
    "BaseAction",
    "CheckpointAction",
    "ClickAction",
    "ContentFingerprint",
    "ContentSignature",
    "HoverAction",
    "InputAction",
    "KeypressAction",
    "LegacySelector",
    "ModalLifecycleAction",
    "NavigationAction",
    "NavigationIntent",
    "Recording",
    "ScrollAction",
    "SelectAction",
    "SelectorStrategy",
    "SelectorWithMetadata",
    "SubmitAction",
    "Viewport",
    "VisualHints",
    "ActionErrorDetail",
    "BrowserType",
    "RunOptions",
    "RunResult",
    "RunStatus",
    "ScreenshotMode",
    "SkippedAction",
    "TimingMode",
    "ActionFailedEvent",
    "ActionSkippedEvent",
    "ActionStartedEvent",
    "ActionSuccessEvent",
    "ProgressEvent",
    "ProgressEventType",
    "RunCompletedEvent",
    "RunErrorEvent",
    "RunStartedEvent",
    "decode_progress_event",
    "RecordingAnalysis",
]
