"""
Progress channel: the per-run publish/subscribe protocol for progress events.

One logical channel exists per run, named `<namespace>:run-progress:<runId>`.
Publishing is fire-and-forget with at-most-once delivery to whoever is subscribed at
that moment; there is no backlog, so a late subscriber misses earlier events.
Within one run, every subscriber receives events in publish order.

## Key Components

1. **channel_name()** - Deterministic channel name for a run id
2. **ProgressChannel** - Encodes events onto a `ProgressTransport` and decodes them
   back into event models for subscribers

## Usage Examples

```python
channel = ProgressChannel(InMemoryTransport())

async def on_event(event):
    print(event.type)

unsubscribe = await channel.subscribe(run_id, on_event=on_event)
await channel.publish_run_started(run_id, recording_id="rec_1", total_actions=3, browser="chromium")
await unsubscribe()
```
"""

from typing import Any, Callable, List, Optional, Union

from pydantic import ValidationError

from actionreplay.events.base import ProgressTransport, invoke_callback, report_error
from actionreplay.events.exceptions import ProgressDecodeError
from actionreplay.events.transports import InMemoryTransport
from actionreplay.events.types import (
    DEFAULT_CHANNEL_NAMESPACE,
    CloseHandler,
    ErrorHandler,
    Unsubscribe,
)
from actionreplay.schemas.progress import (
    ActionFailedEvent,
    ActionSkippedEvent,
    ActionStartedEvent,
    ActionSuccessEvent,
    ActionSummary,
    CompletedRunStatus,
    ProgressEvent,
    RunCompletedEvent,
    RunErrorEvent,
    RunStartedEvent,
    decode_progress_event,
)

EventHandler = Callable[[Any], Any]


def channel_name(run_id: str, namespace: str = DEFAULT_CHANNEL_NAMESPACE) -> str:
    return f"{namespace}:run-progress:{run_id}"


class ProgressChannel:
    """Publishes and subscribes to progress events over a swappable transport.

    Args:
        transport (Optional[ProgressTransport]): Message transport; in-memory by default
        namespace (str): Prefix of every channel name
    """

    def __init__(
        self,
        transport: Optional[ProgressTransport] = None,
        namespace: str = DEFAULT_CHANNEL_NAMESPACE,
    ):
        self.transport = transport or InMemoryTransport()
        self.namespace = namespace

    def channel_for(self, run_id: str) -> str:
        return channel_name(run_id, self.namespace)

    async def publish(self, event: ProgressEvent) -> None:
        """Publish one event on its run's channel.

        Raises:
            EventPublishingError: If the transport could not deliver the message
        """
        await self.transport.publish(self.channel_for(event.run_id), event.to_message())

    async def subscribe(
        self,
        run_id: str,
        on_event: EventHandler,
        on_error: Optional[ErrorHandler] = None,
        on_close: Optional[CloseHandler] = None,
    ) -> Unsubscribe:
        """Receive the events of `run_id` published from now on.

        Callbacks may be plain functions or coroutine functions. A message that does
        not decode into a progress event is reported to `on_error` as a
        `ProgressDecodeError` and never reaches `on_event`.

        Returns:
            Unsubscribe: Coroutine function stopping delivery; calls `on_close` once
        """

        async def on_message(message: Union[str, bytes]) -> None:
            try:
                event = decode_progress_event(message)
            except ValidationError as e:
                raw = message.decode("utf-8", "replace") if isinstance(message, bytes) else message
                await report_error(
                    on_error, ProgressDecodeError(f"Malformed progress message: {e}", raw=raw)
                )
                return
            await invoke_callback(on_event, event)

        transport_unsubscribe = await self.transport.subscribe(
            self.channel_for(run_id), on_message, on_error
        )
        closed = False

        async def unsubscribe() -> None:
            nonlocal closed
            if closed:
                return
            closed = True
            await transport_unsubscribe()
            if on_close is not None:
                await invoke_callback(on_close)

        return unsubscribe

    async def publish_run_started(
        self,
        run_id: str,
        recording_id: str,
        total_actions: int,
        browser: str,
        recording_name: Optional[str] = None,
        actions: Optional[List[ActionSummary]] = None,
    ) -> None:
        await self.publish(
            RunStartedEvent(
                run_id=run_id,
                recording_id=recording_id,
                recording_name=recording_name,
                total_actions=total_actions,
                browser=browser,
                actions=actions,
            )
        )

    async def publish_action_started(self, run_id: str, **fields: Any) -> None:
        await self.publish(ActionStartedEvent(run_id=run_id, **fields))

    async def publish_action_success(self, run_id: str, **fields: Any) -> None:
        await self.publish(ActionSuccessEvent(run_id=run_id, **fields))

    async def publish_action_failed(self, run_id: str, **fields: Any) -> None:
        await self.publish(ActionFailedEvent(run_id=run_id, **fields))

    async def publish_action_skipped(self, run_id: str, **fields: Any) -> None:
        await self.publish(ActionSkippedEvent(run_id=run_id, **fields))

    async def publish_run_completed(
        self,
        run_id: str,
        status: CompletedRunStatus,
        duration_ms: int,
        actions_executed: int,
        actions_failed: int,
        actions_skipped: int,
        video_path: Optional[str] = None,
    ) -> None:
        await self.publish(
            RunCompletedEvent(
                run_id=run_id,
                status=status,
                duration_ms=duration_ms,
                actions_executed=actions_executed,
                actions_failed=actions_failed,
                actions_skipped=actions_skipped,
                video_path=video_path,
            )
        )

    async def publish_run_error(
        self, run_id: str, error_message: str, error_stack: Optional[str] = None
    ) -> None:
        await self.publish(
            RunErrorEvent(run_id=run_id, error_message=error_message, error_stack=error_stack)
        )

    async def close(self) -> None:
        await self.transport.close()
