"""
Run command implementation for the actionreplay CLI.

This module implements the 'run' command which replays a recording in a real
browser and streams progress to the terminal. Ctrl+C aborts the run cleanly; a
second Ctrl+C interrupts immediately.
"""

import asyncio
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from cuid2 import Cuid as CUID
from rich.console import Console

from actionreplay.browser.session import BrowserSession
from actionreplay.config import ConfigurationFactory, ReplaySettings
from actionreplay.events import ProgressChannel, RichTerminalReporter, TransportFactory
from actionreplay.events.types import TransportType
from actionreplay.replication.engine import ReplayEngine
from actionreplay.replication.errors import ReplicatorError
from actionreplay.schemas.run import BrowserType, RunResult, ScreenshotMode, TimingMode
from actionreplay.utils.cancellation import AbortSignal
from actionreplay.utils.logging_config import configure_logging
from actionreplay.utils.recording_loader import RecordingLoader

console = Console()

INTERRUPT_REASON = "interrupted by user"


@contextmanager
def interrupt_aborts(abort_signal: AbortSignal) -> Iterator[None]:
    """Fire `abort_signal` on the first SIGINT received inside the block.

    Must be entered from a coroutine running on the main thread. After the first
    SIGINT the default handler is restored, so a second one raises
    `KeyboardInterrupt`. Event loops without signal support are left untouched.
    """
    loop = asyncio.get_running_loop()

    def on_interrupt() -> None:
        console.print("🛑 Interrupted, stopping the replay (Ctrl+C again to force)")
        abort_signal.abort(INTERRUPT_REASON)
        loop.remove_signal_handler(signal.SIGINT)

    installed = True
    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
    except (NotImplementedError, RuntimeError):
        installed = False

    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def replay_recording(
    recording_file: Path,
    settings: ReplaySettings,
    verbose: bool = False,
    **overrides: object,
) -> RunResult:
    """Replay one recording file in a fresh browser session.

    Args:
        recording_file: Path to the recording JSON
        settings: Resolved settings the run options are built from
        verbose: Also print `action:started` progress lines
        **overrides: RunOptions fields given on the command line

    Returns:
        RunResult of the replay
    """
    recording = RecordingLoader().load_file(recording_file)
    abort_signal = AbortSignal()
    options = settings.to_run_options(
        run_id=CUID().generate(), abort_signal=abort_signal, **overrides
    )

    transport = TransportFactory.create(settings.progress_transport, redis_url=settings.redis_url)
    channel = ProgressChannel(transport, namespace=settings.channel_namespace)
    reporter = RichTerminalReporter(console=console, verbose=verbose)
    unsubscribe = await reporter.attach(channel, options.run_id)

    try:
        with interrupt_aborts(abort_signal):
            async with BrowserSession(
                recording,
                options,
                screenshots_dir=settings.screenshots_dir,
                videos_dir=settings.videos_dir,
            ) as page:
                engine = ReplayEngine(page, channel=channel)
                return await engine.execute(recording, options)
    finally:
        await unsubscribe()
        await channel.close()


def run(
    recording_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Recording JSON"),
    browser: Optional[BrowserType] = typer.Option(None, "--browser", "-b", help="Browser engine"),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--headed", help="Run with or without a browser window"
    ),
    timing_mode: Optional[TimingMode] = typer.Option(None, "--timing-mode", help="Speed preset"),
    speed_multiplier: Optional[float] = typer.Option(
        None, "--speed", min=0.0, max=100.0, help="Multiplier applied to recorded gaps"
    ),
    enable_timing: Optional[bool] = typer.Option(
        None, "--timing/--no-timing", help="Reproduce recorded pacing"
    ),
    timeout: Optional[int] = typer.Option(None, "--timeout", min=1, help="Per-action timeout (ms)"),
    continue_on_error: Optional[bool] = typer.Option(
        None, "--continue-on-error/--fail-fast", help="Keep going after a failed action"
    ),
    screenshot_mode: Optional[ScreenshotMode] = typer.Option(
        None, "--screenshot-mode", help="When screenshots are captured"
    ),
    video: Optional[bool] = typer.Option(None, "--video/--no-video", help="Record a video"),
    transport: Optional[TransportType] = typer.Option(
        None, "--transport", help="Progress transport"
    ),
    redis_url: Optional[str] = typer.Option(None, "--redis-url", help="Redis URL for progress"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="actionreplay.toml path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every action start"),
) -> None:
    """Replay a recording in a real browser.

    Progress is streamed to the terminal while the run executes. The exit code
    is 0 when every action passed and 1 otherwise.
    """
    try:
        settings = ConfigurationFactory.get_settings(config)
        updates = {"progress_transport": transport, "redis_url": redis_url}
        settings = settings.model_copy(
            update={key: value for key, value in updates.items() if value is not None}
        )
        configure_logging(settings.logging_enabled)

        result = asyncio.run(
            replay_recording(
                recording_file,
                settings,
                verbose=verbose,
                browser=browser,
                headless=headless,
                timing_mode=timing_mode,
                speed_multiplier=speed_multiplier,
                enable_timing=enable_timing,
                timeout=timeout,
                continue_on_error=continue_on_error,
                screenshot_mode=screenshot_mode,
                video=video,
            )
        )
    except ReplicatorError as e:
        console.print(f"❌ Replay could not start: {e}")
        raise typer.Exit(1)

    if result.error:
        console.print(f"❌ Replay error: {result.error}")
    for screenshot in result.screenshots:
        console.print(f"   📸 {screenshot}")
    if result.video:
        console.print(f"   🎬 {result.video}")

    if not result.succeeded:
        raise typer.Exit(1)
