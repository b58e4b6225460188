"""
In-process progress transports.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from actionreplay.events.base import ProgressTransport, invoke_callback, report_error
from actionreplay.events.exceptions import TransportUnavailableError
from actionreplay.events.types import ErrorHandler, MessageHandler, Unsubscribe


@dataclass(eq=False)
class _Subscription:
    on_message: MessageHandler
    on_error: Optional[ErrorHandler] = None


class InMemoryTransport(ProgressTransport):
    """Topic -> subscriber list pub/sub living inside one event loop.

    Publishes are serialized by a lock per channel, so every subscriber sees the
    messages of a channel in publish order while a slow subscriber on one run never
    holds up another run. Subscribers are called inline and must not publish on
    the same transport from inside their callback.
    """

    name = "memory"

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[_Subscription]] = defaultdict(list)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._closed = False

    async def is_available(self) -> bool:
        return not self._closed

    async def publish(self, channel: str, message: str) -> None:
        if self._closed:
            raise TransportUnavailableError("In-memory transport is closed")

        if not self._subscriptions.get(channel):
            return

        async with self._locks[channel]:
            for subscription in list(self._subscriptions.get(channel, [])):
                try:
                    await invoke_callback(subscription.on_message, message)
                except Exception as e:
                    await report_error(subscription.on_error, e)

    async def subscribe(
        self, channel: str, on_message: MessageHandler, on_error: Optional[ErrorHandler] = None
    ) -> Unsubscribe:
        if self._closed:
            raise TransportUnavailableError("In-memory transport is closed")

        subscription = _Subscription(on_message=on_message, on_error=on_error)
        self._subscriptions[channel].append(subscription)

        async def unsubscribe() -> None:
            subscribers = self._subscriptions.get(channel)
            if subscribers and subscription in subscribers:
                subscribers.remove(subscription)
                if not subscribers:
                    del self._subscriptions[channel]
                    lock = self._locks.get(channel)
                    if lock is not None and not lock.locked():
                        del self._locks[channel]

        return unsubscribe

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscriptions.get(channel, []))

    async def close(self) -> None:
        self._closed = True
        self._subscriptions.clear()
        self._locks.clear()


class NullTransport(ProgressTransport):
    """Transport that accepts and drops every message."""

    name = "none"

    async def is_available(self) -> bool:
        return True

    async def publish(self, channel: str, message: str) -> None:
        return None

    async def subscribe(
        self, channel: str, on_message: MessageHandler, on_error: Optional[ErrorHandler] = None
    ) -> Unsubscribe:
        async def unsubscribe() -> None:
            return None

        return unsubscribe
