import io
from typing import Any, Dict

import pytest
from rich.console import Console

from actionreplay.events import ProgressChannel, RichTerminalReporter
from actionreplay.events.exceptions import ProgressDecodeError
from actionreplay.schemas.progress import (
    ActionFailedEvent,
    ActionSkippedEvent,
    ActionStartedEvent,
    ActionSuccessEvent,
    CompletedRunStatus,
    RunCompletedEvent,
    RunErrorEvent,
    RunStartedEvent,
)

RUN_ID = "run_terminal"


def action_fields(index: int) -> Dict[str, Any]:
    return {
        "run_id": RUN_ID,
        "action_id": f"act_{index + 1}",
        "action_type": "click",
        "action_index": index,
        "total_actions": 3,
        "browser": "chromium",
    }


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), record=True, width=200, color_system=None)


class TestRichTerminalReporter:
    """Test suite for `RichTerminalReporter` rendering of progress events."""

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_renders_a_run_from_the_channel(self, console: Console) -> None:
        channel = ProgressChannel()
        reporter = RichTerminalReporter(console=console)
        unsubscribe = await reporter.attach(channel, RUN_ID)

        await channel.publish(
            RunStartedEvent(
                run_id=RUN_ID,
                recording_id="rec_1",
                recording_name="Checkout",
                total_actions=3,
                browser="chromium",
            )
        )
        await channel.publish(ActionStartedEvent(**action_fields(0)))
        await channel.publish(ActionSuccessEvent(duration_ms=42, selector_used="id=buy", **action_fields(0)))
        await channel.publish(
            ActionFailedEvent(error_message="Element not found", duration_ms=7, **action_fields(1))
        )
        await channel.publish(ActionSkippedEvent(reason="cookie banner absent", **action_fields(2)))
        await channel.publish(
            RunCompletedEvent(
                run_id=RUN_ID,
                status=CompletedRunStatus.FAILED,
                duration_ms=1500,
                actions_executed=1,
                actions_failed=1,
                actions_skipped=1,
            )
        )
        await unsubscribe()

        output = console.export_text()
        assert "Starting replay of 'Checkout' (3 actions, chromium)" in output
        assert "[1/3] click act_1 (42ms) via id=buy" in output
        assert "[2/3] click act_2: Element not found" in output
        assert "[3/3] click act_3: cookie banner absent" in output
        assert "Run failed: 1 passed, 1 failed, 1 skipped in 1.50s" in output
        assert reporter.events_seen == 6

    # ? VALID CASE
    def test_action_started_only_when_verbose(self, console: Console) -> None:
        RichTerminalReporter(console=console).on_event(ActionStartedEvent(**action_fields(0)))
        assert console.export_text() == ""

        RichTerminalReporter(console=console, verbose=True).on_event(
            ActionStartedEvent(**action_fields(0))
        )
        assert "[1/3] click act_1" in console.export_text()

    # ? INVALID CASE
    def test_run_error_and_stream_error(self, console: Console) -> None:
        reporter = RichTerminalReporter(console=console)

        reporter.on_event(RunErrorEvent(run_id=RUN_ID, error_message="engine crashed"))
        reporter.on_error(ProgressDecodeError("Malformed progress message", raw="{}"))

        output = console.export_text()
        assert "Run error: engine crashed" in output
        assert "Progress stream error: Malformed progress message" in output
