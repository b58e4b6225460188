"""
Replay execution: the run state machine, its errors and the replay engine.

The engine lives in `actionreplay.replication.engine` and is imported from there (or
from the top level `actionreplay` package).
"""

from .errors import (
    ActionError,
    ActionTimeoutError,
    BrowserError,
    ConfigurationError,
    InvalidStateTransitionError,
    NavigationError,
    RecordingValidationError,
    ReplicatorError,
    RunCancelledError,
    SelectorError,
    is_fatal_error,
)
from .state import ActionState, RunState, RunStateMachine

__all__ = [
    "ActionError",
    "ActionTimeoutError",
    "BrowserError",
    "ConfigurationError",
    "InvalidStateTransitionError",
    "NavigationError",
    "RecordingValidationError",
    "ReplicatorError",
    "RunCancelledError",
    "SelectorError",
    "is_fatal_error",
    "ActionState",
    "RunState",
    "RunStateMachine",
]
