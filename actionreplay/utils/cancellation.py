"""
Cooperative cancellation for replay runs.

`AbortSignal` is an explicit cancellation token handed to the engine through
`RunOptions.abort_signal`. Every suspension point of a run (timing delay, element
resolution, action dispatch) waits on the token alongside its own work so an abort is
observed promptly instead of between actions only.

## Usage Examples

```python
signal = AbortSignal()
options = RunOptions(abort_signal=signal)
task = asyncio.create_task(engine.execute(recording, options))

signal.abort("user pressed stop")
result = await task  # result.status == RunStatus.CANCELLED
```
"""

import asyncio
from typing import Any, Awaitable, Optional, TypeVar

from actionreplay.replication.errors import ActionTimeoutError, RunCancelledError

T = TypeVar("T")

DEFAULT_ABORT_REASON = "run cancelled"


class AbortSignal:
    """Cancellation token shared between the caller and a running replay."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self, reason: str = DEFAULT_ABORT_REASON) -> None:
        """Fire the signal. Later calls keep the first reason."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_aborted(self) -> None:
        if self.aborted:
            raise RunCancelledError(self.reason or DEFAULT_ABORT_REASON)


async def abortable_sleep(seconds: float, signal: Optional[AbortSignal]) -> bool:
    """Sleep for `seconds` unless `signal` fires first.

    Returns:
        bool: True if the full delay elapsed, False if it was interrupted by an abort
    """
    if seconds <= 0:
        return not (signal is not None and signal.aborted)
    if signal is None:
        await asyncio.sleep(seconds)
        return True
    if signal.aborted:
        return False

    waiter = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait({waiter}, timeout=seconds)
    finally:
        waiter.cancel()
    return waiter not in done


def _consume_result(task: "asyncio.Future[Any]") -> None:
    if not task.cancelled():
        task.exception()


async def await_with_abort(
    awaitable: Awaitable[T],
    signal: Optional[AbortSignal],
    timeout: Optional[float],
    description: str = "operation",
) -> T:
    """Await `awaitable` bounded by `timeout` seconds and by `signal`.

    On timeout the pending work is cancelled and `ActionTimeoutError` is raised. On
    abort the pending work is abandoned rather than cancelled, leaving it to finish
    under its own cancellation contract, and `RunCancelledError` is raised.

    Raises:
        ActionTimeoutError: If `timeout` elapsed first
        RunCancelledError: If `signal` fired first
    """
    if signal is not None:
        signal.raise_if_aborted()

    work = asyncio.ensure_future(awaitable)
    waiters = {work}
    abort_waiter: Optional["asyncio.Future[None]"] = None
    if signal is not None:
        abort_waiter = asyncio.ensure_future(signal.wait())
        waiters.add(abort_waiter)

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        if abort_waiter is not None:
            abort_waiter.cancel()

    if work in done:
        return work.result()

    if abort_waiter is not None and abort_waiter in done:
        work.add_done_callback(_consume_result)
        raise RunCancelledError(signal.reason if signal and signal.reason else DEFAULT_ABORT_REASON)

    work.cancel()
    work.add_done_callback(_consume_result)
    raise ActionTimeoutError(f"{description} timed out after {timeout * 1000:.0f}ms")
