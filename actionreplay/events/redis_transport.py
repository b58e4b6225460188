"""
Redis pub/sub progress transport.

Publishing goes through one shared client guarded by a lock, so concurrent runs in
the same process never interleave their I/O on the connection. Every subscription
gets its own pubsub connection and a listener task that forwards messages to the
subscriber callback.

## Usage Examples

```python
transport = RedisTransport(redis_url="redis://localhost:6379/0")
channel = ProgressChannel(transport)

unsubscribe = await channel.subscribe(run_id, on_event=print)
...
await unsubscribe()
await transport.close()
```
"""

import asyncio
from typing import Any, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError

from actionreplay.events.base import ProgressTransport, invoke_callback, report_error
from actionreplay.events.exceptions import EventPublishingError, TransportUnavailableError
from actionreplay.events.types import ErrorHandler, MessageHandler, Unsubscribe
from actionreplay.utils.logging_config import logger

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class RedisTransport(ProgressTransport):
    """Progress transport backed by Redis pub/sub.

    Args:
        redis_url (str): Connection URL used when no client is given
        client (Optional[redis.Redis]): Pre-built client, e.g. shared with a worker
    """

    name = "redis"

    def __init__(self, redis_url: str = DEFAULT_REDIS_URL, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.redis: redis.Redis = client or redis.from_url(redis_url, decode_responses=True)
        self._publish_lock = asyncio.Lock()
        self._listeners: Set["asyncio.Task[None]"] = set()
        self._closed = False

    async def is_available(self) -> bool:
        if self._closed:
            return False
        try:
            await self.redis.ping()
            return True
        except (RedisError, OSError) as e:
            logger.warning(f"🔊❌ Redis not reachable at {self.redis_url}: {e}")
            return False

    async def publish(self, channel: str, message: str) -> None:
        if self._closed:
            raise TransportUnavailableError("Redis transport is closed")

        try:
            async with self._publish_lock:
                await self.redis.publish(channel, message)
        except (RedisError, OSError) as e:
            raise EventPublishingError(
                f"Failed to publish to {channel}: {e}", transport_name=self.name
            ) from e

    async def subscribe(
        self, channel: str, on_message: MessageHandler, on_error: Optional[ErrorHandler] = None
    ) -> Unsubscribe:
        if self._closed:
            raise TransportUnavailableError("Redis transport is closed")

        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        logger.debug(f"🔊 Subscribed to {channel}")

        listener = asyncio.create_task(self._listen(pubsub, channel, on_message, on_error))
        self._listeners.add(listener)
        listener.add_done_callback(self._listeners.discard)

        async def unsubscribe() -> None:
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass
            try:
                await pubsub.unsubscribe(channel)
            finally:
                await pubsub.aclose()
            logger.debug(f"🔇 Unsubscribed from {channel}")

        return unsubscribe

    async def _listen(
        self,
        pubsub: Any,
        channel: str,
        on_message: MessageHandler,
        on_error: Optional[ErrorHandler],
    ) -> None:
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue

                data = message["data"]
                if isinstance(data, bytes):
                    data = data.decode("utf-8")

                try:
                    await invoke_callback(on_message, data)
                except Exception as e:
                    await report_error(on_error, e)
        except (RedisError, OSError) as e:
            logger.error(f"🔊❌ Error listening for progress on {channel}: {e}")
            await report_error(on_error, e)

    async def close(self) -> None:
        self._closed = True
        for listener in list(self._listeners):
            listener.cancel()
        if self._listeners:
            await asyncio.gather(*self._listeners, return_exceptions=True)
        await self.redis.aclose()
