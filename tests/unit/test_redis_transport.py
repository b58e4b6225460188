import asyncio
from typing import Any, AsyncIterator, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from actionreplay.events.channel import ProgressChannel
from actionreplay.events.exceptions import EventPublishingError
from actionreplay.events.redis_transport import RedisTransport
from actionreplay.schemas.progress import RunErrorEvent
from tests.mocks.page_mocks import RecordingSubscriber


def mock_pubsub(messages: List[Dict[str, Any]]) -> MagicMock:
    """Pub/sub mock whose `listen()` yields `messages` and then blocks."""
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()

    async def listen() -> AsyncIterator[Dict[str, Any]]:
        for message in messages:
            yield message
        await asyncio.Event().wait()

    pubsub.listen = listen
    return pubsub


def mock_client(pubsub: MagicMock) -> MagicMock:
    client = MagicMock()
    client.publish = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    client.pubsub = MagicMock(return_value=pubsub)
    return client


class TestRedisTransport:
    """Test suite for `RedisTransport` with a mocked `redis.asyncio` client."""

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_publish_uses_run_channel(self) -> None:
        client = mock_client(mock_pubsub([]))
        channel = ProgressChannel(RedisTransport(client=client))

        await channel.publish(RunErrorEvent(run_id="run_1", error_message="boom"))

        name, message = client.publish.await_args.args
        assert name == "actionreplay:run-progress:run_1"
        assert '"errorMessage":"boom"' in message

    # ? INVALID CASE
    @pytest.mark.asyncio
    async def test_publish_failure_is_wrapped(self) -> None:
        client = mock_client(mock_pubsub([]))
        client.publish.side_effect = RedisConnectionError("connection refused")
        transport = RedisTransport(client=client)

        with pytest.raises(EventPublishingError) as exc_info:
            await transport.publish("actionreplay:run-progress:run_1", "{}")

        assert exc_info.value.transport_name == "redis"

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_subscribe_delivers_decoded_events(self) -> None:
        event = RunErrorEvent(run_id="run_1", error_message="boom")
        pubsub = mock_pubsub(
            [
                {"type": "subscribe", "data": 1},
                {"type": "message", "data": event.to_message().encode("utf-8")},
            ]
        )
        channel = ProgressChannel(RedisTransport(client=mock_client(pubsub)))
        subscriber = RecordingSubscriber()

        unsubscribe = await channel.subscribe("run_1", subscriber.on_event, subscriber.on_error)
        for _ in range(5):
            await asyncio.sleep(0)
        await unsubscribe()

        pubsub.subscribe.assert_awaited_once_with("actionreplay:run-progress:run_1")
        assert [e.type for e in subscriber.events] == ["run:error"]
        assert subscriber.errors == []
        pubsub.unsubscribe.assert_awaited_once_with("actionreplay:run-progress:run_1")
        pubsub.aclose.assert_awaited_once()

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_is_available_pings(self) -> None:
        client = mock_client(mock_pubsub([]))
        transport = RedisTransport(client=client)

        assert await transport.is_available()

        client.ping.side_effect = RedisConnectionError("down")
        assert not await transport.is_available()

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_close_stops_listeners_and_client(self) -> None:
        client = mock_client(mock_pubsub([]))
        transport = RedisTransport(client=client)
        await transport.subscribe("actionreplay:run-progress:run_1", lambda message: None)

        await transport.close()

        client.aclose.assert_awaited_once()
        assert not await transport.is_available()
