"""
Exceptions for the progress event system.
"""

from typing import Optional


class TransportUnavailableError(Exception):
    """Raised when a transport is closed or cannot be reached."""

    def __init__(self, message: str = "Transport is not available"):
        self.message = message
        super().__init__(self.message)


class EventPublishingError(Exception):
    """Raised when publishing a progress event fails."""

    def __init__(
        self, message: str = "Event publishing failed", transport_name: Optional[str] = None
    ):
        self.message = message
        self.transport_name = transport_name
        super().__init__(self.message)


class ProgressDecodeError(Exception):
    """Raised when a received message is not a valid progress event."""

    def __init__(self, message: str, raw: Optional[str] = None):
        self.message = message
        self.raw = raw
        super().__init__(self.message)
