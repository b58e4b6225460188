"""
Rich terminal progress reporter.

`RichTerminalReporter` is a progress channel subscriber that renders a run's events
as colored terminal lines. It consumes exactly the events any other observer would
receive, so what the terminal shows is what a remote dashboard would show.
"""

from typing import Dict, Optional

from rich.console import Console
from rich.text import Text

from actionreplay.events.channel import ProgressChannel
from actionreplay.events.types import Unsubscribe
from actionreplay.schemas.progress import (
    ActionEventFields,
    ActionFailedEvent,
    ActionSkippedEvent,
    ActionStartedEvent,
    ActionSuccessEvent,
    ProgressEvent,
    RunCompletedEvent,
    RunErrorEvent,
    RunStartedEvent,
)

STATUS_STYLES: Dict[str, str] = {
    "passed": "bold green",
    "failed": "bold red",
    "cancelled": "bold yellow",
}


class RichTerminalReporter:
    """Renders progress events with Rich.

    Attributes:
        console (Console): Rich console used for output
        style (str): Default style for informational lines
        verbose (bool): Also print `action:started` lines

    Example:
        ```python
        reporter = RichTerminalReporter()
        unsubscribe = await reporter.attach(channel, run_id)
        result = await engine.execute(recording, options)
        await unsubscribe()
        ```
    """

    def __init__(self, console: Optional[Console] = None, verbose: bool = False) -> None:
        self.console = console or Console()
        self.style = "bright_blue"
        self.verbose = verbose
        self.events_seen = 0

    async def attach(self, channel: ProgressChannel, run_id: str) -> Unsubscribe:
        return await channel.subscribe(run_id, on_event=self.on_event, on_error=self.on_error)

    def on_error(self, error: Exception) -> None:
        self.console.print(Text(f"⚠️ Progress stream error: {error}", style="yellow"))

    def on_event(self, event: ProgressEvent) -> None:
        self.events_seen += 1

        if isinstance(event, RunStartedEvent):
            name = event.recording_name or event.recording_id
            self.console.print(
                Text(
                    f"🚀 Starting replay of '{name}' ({event.total_actions} actions, {event.browser})",
                    style=self.style,
                )
            )
        elif isinstance(event, ActionStartedEvent):
            if self.verbose:
                self.console.print(
                    Text(f"⚙️ {self._position(event)} {event.action_type} {event.action_id}", style="dim")
                )
        elif isinstance(event, ActionSuccessEvent):
            via = f" via {event.selector_used}" if event.selector_used else ""
            self.console.print(
                Text(
                    f"✅ {self._position(event)} {event.action_type} {event.action_id} "
                    f"({event.duration_ms}ms){via}",
                    style="green",
                )
            )
        elif isinstance(event, ActionFailedEvent):
            self.console.print(
                Text(
                    f"❌ {self._position(event)} {event.action_type} {event.action_id}: "
                    f"{event.error_message}",
                    style="red",
                )
            )
        elif isinstance(event, ActionSkippedEvent):
            self.console.print(
                Text(
                    f"⏭️ {self._position(event)} {event.action_type} {event.action_id}: {event.reason}",
                    style="yellow",
                )
            )
        elif isinstance(event, RunCompletedEvent):
            status = event.status.value
            self.console.print(
                Text(
                    f"🏁 Run {status}: {event.actions_executed} passed, {event.actions_failed} failed, "
                    f"{event.actions_skipped} skipped in {event.duration_ms / 1000:.2f}s",
                    style=STATUS_STYLES.get(status, self.style),
                )
            )
        elif isinstance(event, RunErrorEvent):
            self.console.print(Text(f"💥 Run error: {event.error_message}", style="bold red"))

    @staticmethod
    def _position(event: ActionEventFields) -> str:
        return f"[{event.action_index + 1}/{event.total_actions}]"
