"""
Types and enumerations for the progress event system.
"""

from enum import Enum
from typing import Awaitable, Callable, Union


class TransportType(str, Enum):
    """Supported progress transports."""

    MEMORY = "memory"  # In-process pub/sub
    REDIS = "redis"  # Redis pub/sub, shared across processes
    NONE = "none"  # Drops every message


DEFAULT_CHANNEL_NAMESPACE = "actionreplay"

MessageHandler = Callable[[str], Union[None, Awaitable[None]]]
ErrorHandler = Callable[[Exception], Union[None, Awaitable[None]]]
CloseHandler = Callable[[], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], Awaitable[None]]
