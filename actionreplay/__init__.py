"""
actionreplay - Deterministic Replay of Recorded Browser Sessions

Replays a recording of user interactions (clicks, inputs, navigation and more) in a
real browser, locating each target element through ranked selector candidates with a
content-based fallback, and streaming per-action progress to any subscriber.

## Key Features

1. **Recording Normalization** - Id ordering, zero-based timestamps, input sequence repair
2. **Resilient Element Resolution** - Ranked selectors, context scoping, content signatures
3. **Faithful Timing** - Recorded pacing with speed presets, bounded and cancellable
4. **Live Progress** - Typed progress events over in-memory or Redis pub/sub

## Core Components

- `RecordingNormalizer` - Canonical ordering and timestamps for a recording
- `SelectorResolver` - Target element resolution for one action
- `ReplayEngine` - Executes a recording and produces a `RunResult`
- `ProgressChannel` - Publishes and subscribes to run progress events
"""

from actionreplay.utils import AbortSignal, configure_logging, logger

from actionreplay.schemas import (
    Recording,
    RunOptions,
    RunResult,
    RunStatus,
    ProgressEvent,
)

from actionreplay.normalization import NormalizationReport, RecordingNormalizer
from actionreplay.resolution import PageCapability, ResolverPolicy, SelectorResolver
from actionreplay.events import ProgressChannel, TransportFactory, TransportType
from actionreplay.replication.engine import ReplayEngine
from actionreplay.replication.errors import (
    ActionError,
    BrowserError,
    ConfigurationError,
    RecordingValidationError,
    ReplicatorError,
    RunCancelledError,
)
from actionreplay.config import ConfigurationFactory, ReplaySettings

__version__ = "0.1.0"

__all__ = [
    "AbortSignal",
    "configure_logging",
    "logger",
    "Recording",
    "RunOptions",
    "RunResult",
    "RunStatus",
    "ProgressEvent",
    "NormalizationReport",
    "RecordingNormalizer",
    "PageCapability",
    "ResolverPolicy",
    "SelectorResolver",
    "ProgressChannel",
    "TransportFactory",
    "TransportType",
    "ReplayEngine",
    "ActionError",
    "BrowserError",
    "ConfigurationError",
    "RecordingValidationError",
    "ReplicatorError",
    "RunCancelledError",
    "ConfigurationFactory",
    "ReplaySettings",
]
