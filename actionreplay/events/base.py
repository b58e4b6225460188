"""
Abstract base class for progress transports.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from actionreplay.events.types import ErrorHandler, MessageHandler, Unsubscribe
from actionreplay.utils.logging_config import logger


async def invoke_callback(callback: Callable[..., Any], *args: Any) -> None:
    """Call a subscriber callback that may be a plain function or a coroutine function."""
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


async def report_error(on_error: Optional[ErrorHandler], error: Exception) -> None:
    """Hand `error` to a subscriber's error callback, logging when there is none."""
    if on_error is None:
        logger.warning(f"⚠️ Unhandled progress subscriber error: {error}")
        return
    try:
        await invoke_callback(on_error, error)
    except Exception as nested:
        logger.warning(f"⚠️ Progress error callback raised: {nested}")


class ProgressTransport(ABC):
    """Abstract publish/subscribe transport carrying raw string messages.

    A transport must deliver messages of one channel to each subscriber in publish
    order and must tolerate concurrent publishes from unrelated runs. It knows
    nothing about progress events; encoding and decoding happen in `ProgressChannel`.
    """

    name: str = "transport"

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the transport is ready to publish.

        Returns:
            True if the transport is available, False otherwise
        """
        raise NotImplementedError("is_available() must be implemented by subclasses")

    @abstractmethod
    async def publish(self, channel: str, message: str) -> None:
        """Deliver `message` to the current subscribers of `channel`.

        Raises:
            EventPublishingError: If the message could not be handed to the backend
            TransportUnavailableError: If the transport has been closed
        """
        raise NotImplementedError("publish() must be implemented by subclasses")

    @abstractmethod
    async def subscribe(
        self, channel: str, on_message: MessageHandler, on_error: Optional[ErrorHandler] = None
    ) -> Unsubscribe:
        """Start receiving messages published on `channel` from now on.

        Returns:
            Unsubscribe: Coroutine function that stops delivery and releases resources
        """
        raise NotImplementedError("subscribe() must be implemented by subclasses")

    async def close(self) -> None:
        """Release the transport's resources."""
        return None
