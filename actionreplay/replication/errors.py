"""
Replication error classes for the actionreplay package.

This module contains the exception classes raised while loading and replaying a
recording. Expected per-action outcomes (an element that cannot be found, an
optional action that is skipped) are returned as values by the resolver; the engine
turns an unresolvable required action into a `SelectorError` inside its per-action
boundary. `is_fatal_error` tells apart failures after which the page is gone.

## Exception Hierarchy

```
ReplicatorError (base)
├── ActionError
│   ├── ActionTimeoutError
│   └── SelectorError
├── NavigationError
├── BrowserError
├── ConfigurationError
├── RecordingValidationError
├── RunCancelledError
└── InvalidStateTransitionError
```

## Usage Examples

```python
from actionreplay.replication.errors import ReplicatorError, RecordingValidationError

try:
    recording = RecordingLoader().load_file("checkout.json")
except RecordingValidationError as e:
    print(f"Recording rejected: {e}")
except ReplicatorError as e:
    print(f"General replication error: {e}")
```
"""

from typing import List, Optional


class ReplicatorError(Exception):
    """Base exception for all replication-related errors.

    Example:
        ```python
        try:
            await engine.execute(recording, options)
        except ReplicatorError as e:
            print(f"Replication error: {e}")
        ```
    """

    pass


class ActionError(ReplicatorError):
    """Exception raised when a single recorded action cannot be performed.

    Attributes:
        action_id (Optional[str]): Id of the failing action
        action_type (Optional[str]): Type of the failing action
    """

    def __init__(
        self, message: str, action_id: Optional[str] = None, action_type: Optional[str] = None
    ):
        super().__init__(message)
        self.action_id = action_id
        self.action_type = action_type


class ActionTimeoutError(ActionError):
    """Exception raised when resolving and dispatching an action exceeds the run timeout."""

    pass


class SelectorError(ActionError):
    """Exception raised when no selector strategy located the action's target element.

    Attributes:
        attempted_strategies (List[str]): Strategies that were tried, in order
        reason (str): Either `no-match` or `ambiguous`
    """

    def __init__(
        self,
        message: str,
        action_id: Optional[str] = None,
        action_type: Optional[str] = None,
        attempted_strategies: Optional[List[str]] = None,
        reason: str = "no-match",
    ):
        super().__init__(message, action_id=action_id, action_type=action_type)
        self.attempted_strategies = attempted_strategies or []
        self.reason = reason


class NavigationError(ReplicatorError):
    """Exception raised when a navigation action does not reach its target URL."""

    pass


class BrowserError(ReplicatorError):
    """Exception raised when the browser or page cannot be launched or driven.

    Example:
        ```python
        try:
            async with BrowserSession(recording, options) as page:
                ...
        except BrowserError as e:
            print(f"Browser operation failed: {e}")
        ```
    """

    pass


class ConfigurationError(ReplicatorError):
    """Exception raised when run options or settings are invalid."""

    pass


class RecordingValidationError(ReplicatorError):
    """Exception raised when a recording document fails structural validation.

    Attributes:
        details (List[str]): One human readable line per validation problem
    """

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = details or []


class RunCancelledError(ReplicatorError):
    """Exception raised inside a suspension point when the run's abort signal fires."""

    pass


class InvalidStateTransitionError(ReplicatorError):
    """Exception raised when the run state machine is asked for an illegal transition."""

    pass


FATAL_ERROR_MARKERS = (
    "target closed",
    "target page, context or browser has been closed",
    "browser has been closed",
    "context has been closed",
)


def is_fatal_error(message: str) -> bool:
    """Whether an action failure means the page is gone and no later action can run."""
    lowered = message.lower()
    return any(marker in lowered for marker in FATAL_ERROR_MARKERS)
