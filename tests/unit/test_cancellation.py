import asyncio

import pytest

from actionreplay.replication.errors import ActionTimeoutError, RunCancelledError
from actionreplay.utils.cancellation import AbortSignal, abortable_sleep, await_with_abort


class TestAbortSignal:
    """Test suite for `AbortSignal` and the abort-aware waiting helpers."""

    # ? VALID CASE
    def test_first_reason_is_kept(self) -> None:
        signal = AbortSignal()
        signal.abort("user stop")
        signal.abort("second")

        assert signal.aborted
        assert signal.reason == "user stop"

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_sleep_completes_without_abort(self) -> None:
        assert await abortable_sleep(0.01, AbortSignal())
        assert await abortable_sleep(0.01, None)

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_sleep_is_interrupted_by_abort(self) -> None:
        signal = AbortSignal()
        asyncio.get_running_loop().call_later(0.02, signal.abort)
        loop = asyncio.get_running_loop()
        started = loop.time()

        completed = await abortable_sleep(5, signal)

        assert not completed
        assert loop.time() - started < 1

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_await_with_abort_returns_result(self) -> None:
        async def work() -> str:
            await asyncio.sleep(0.01)
            return "done"

        assert await await_with_abort(work(), AbortSignal(), timeout=1) == "done"

    # ? INVALID CASE
    @pytest.mark.asyncio
    async def test_await_with_abort_times_out(self) -> None:
        with pytest.raises(ActionTimeoutError):
            await await_with_abort(asyncio.sleep(1), None, timeout=0.02, description="click a")

    # ? INVALID CASE
    @pytest.mark.asyncio
    async def test_await_with_abort_raises_on_abort(self) -> None:
        signal = AbortSignal()
        asyncio.get_running_loop().call_later(0.02, signal.abort, "user stop")
        work = asyncio.ensure_future(asyncio.sleep(0.2))

        with pytest.raises(RunCancelledError, match="user stop"):
            await await_with_abort(work, signal, timeout=5)

        assert not work.cancelled()
        await work
