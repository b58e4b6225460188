import asyncio
import json
import signal
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterator, List

import pytest
from typer.testing import CliRunner

from actionreplay.cli.commands.run import INTERRUPT_REASON, interrupt_aborts
from actionreplay.cli.main import app
from actionreplay.config import ConfigurationFactory
from actionreplay.replication.engine import ReplayEngine
from actionreplay.replication.errors import ActionError
from actionreplay.schemas.run import RunOptions, RunStatus
from actionreplay.utils.cancellation import AbortSignal
from tests.fixtures.models.schema_factories import RecordingFactory, click_action, input_action
from tests.mocks.page_mocks import FakePage

runner = CliRunner()

LOGIN_HTML = """
<html><body>
  <form id="login"><input id="act_1" name="email"><button id="act_2">Sign in</button></form>
</body></html>
"""


@pytest.fixture
def recording_file(tmp_path: Path) -> Path:
    recording = RecordingFactory.custom_build(
        actions=[
            click_action("act_2", 1_714_557_601_000),
            input_action("act_1", 1_714_557_600_000),
        ]
    )
    path = tmp_path / "login.json"
    path.write_text(json.dumps(recording.to_json_dict()))
    return path


class TestCli:
    """Test suite for the offline CLI commands."""

    # ? VALID CASE
    def test_validate_reports_ordering(self, recording_file: Path) -> None:
        result = runner.invoke(app, ["validate", str(recording_file)])

        assert result.exit_code == 0
        assert "valid recording" in result.output
        assert "not stored in id order" in result.output
        assert "absolute epoch" in result.output

    # ? INVALID CASE
    def test_validate_rejects_broken_file(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text('{"id": "rec_1"}')

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "viewport" in result.output

    # ? VALID CASE
    def test_info_json(self, recording_file: Path) -> None:
        result = runner.invoke(app, ["info", str(recording_file), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["statistics"]["total"] == 2
        assert data["navigation"]["flowType"] == "SPA"

    # ? VALID CASE
    def test_normalize_writes_sorted_recording(self, recording_file: Path, tmp_path: Path) -> None:
        output = tmp_path / "normalized.json"

        result = runner.invoke(app, ["normalize", str(recording_file), "-o", str(output)])

        assert result.exit_code == 0
        actions = json.loads(output.read_text())["actions"]
        assert [action["id"] for action in actions] == ["act_1", "act_2"]
        assert [action["timestamp"] for action in actions] == [0, 1000]

    # ? VALID CASE
    def test_resolve_against_saved_page(self, recording_file: Path, tmp_path: Path) -> None:
        html_file = tmp_path / "login.html"
        html_file.write_text(LOGIN_HTML)

        result = runner.invoke(app, ["resolve", str(recording_file), str(html_file)])

        assert result.exit_code == 0
        assert "found" in result.output

    # ? INVALID CASE
    def test_resolve_unknown_action(self, recording_file: Path, tmp_path: Path) -> None:
        html_file = tmp_path / "login.html"
        html_file.write_text(LOGIN_HTML)

        result = runner.invoke(
            app, ["resolve", str(recording_file), str(html_file), "--action-id", "act_9"]
        )

        assert result.exit_code == 1
        assert "No action with id act_9" in result.output


@pytest.fixture
def opened_sessions(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[List[Any]]:
    """Replace the browser with an in-memory page and record the options it was opened with."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ACTIONREPLAY_LOGGING_ENABLED", "false")
    ConfigurationFactory.reset()
    opened: List[Any] = []
    page = FakePage(
        elements={"act_1": ["email"], "act_2": ["submit"]},
        failures={"act_2": ActionError("element is detached", action_id="act_2")},
    )

    @asynccontextmanager
    async def session(recording: Any, options: Any, **kwargs: Any) -> AsyncIterator[FakePage]:
        opened.append(options)
        yield page

    monkeypatch.setattr("actionreplay.cli.commands.run.BrowserSession", session)
    yield opened
    ConfigurationFactory.reset()


class TestRunCommand:
    """Test suite for the `run` command against an in-memory page."""

    # ? VALID CASE
    def test_successful_run_exits_zero(self, opened_sessions: List[Any], tmp_path: Path) -> None:
        path = tmp_path / "email.json"
        recording = RecordingFactory.custom_build(actions=[input_action("act_1", 0)])
        path.write_text(json.dumps(recording.to_json_dict()))

        result = runner.invoke(app, ["run", str(path), "--no-timing", "--timeout", "1234"])

        assert result.exit_code == 0
        assert "Run passed: 1 passed, 0 failed, 0 skipped" in result.output
        (options,) = opened_sessions
        assert options.timeout == 1234
        assert options.enable_timing is False
        assert options.abort_signal is not None

    # ? INVALID CASE
    def test_failed_action_exits_one(self, opened_sessions: List[Any], recording_file: Path) -> None:
        result = runner.invoke(
            app, ["run", str(recording_file), "--no-timing", "--continue-on-error", "-v"]
        )

        assert result.exit_code == 1
        assert "element is detached" in result.output
        assert "Run failed: 1 passed, 1 failed, 0 skipped" in result.output
        assert opened_sessions[0].continue_on_error is True

    # ? INVALID CASE
    def test_invalid_recording_exits_one(self, opened_sessions: List[Any], tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text('{"id": "rec_1"}')

        result = runner.invoke(app, ["run", str(path)])

        assert result.exit_code == 1
        assert "Replay could not start" in result.output
        assert opened_sessions == []


class TestInterruptHandling:
    """Ctrl+C during `run` aborts the replay through its abort signal."""

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_first_interrupt_fires_the_abort_signal(self) -> None:
        abort_signal = AbortSignal()

        with interrupt_aborts(abort_signal):
            signal.raise_signal(signal.SIGINT)
            await asyncio.wait_for(abort_signal.wait(), timeout=1)

        assert abort_signal.reason == INTERRUPT_REASON

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_interrupt_cancels_a_running_replay(self) -> None:
        abort_signal = AbortSignal()
        page = FakePage(elements={"act_1": ["email"]}, dispatch_delay=5)
        recording = RecordingFactory.custom_build(actions=[input_action("act_1", 0)])

        with interrupt_aborts(abort_signal):
            asyncio.get_running_loop().call_later(0.05, signal.raise_signal, signal.SIGINT)
            result = await ReplayEngine(page).execute(
                recording, RunOptions(abort_signal=abort_signal, enable_timing=False)
            )

        assert result.status == RunStatus.CANCELLED
        assert result.skipped_actions[0].reason == INTERRUPT_REASON

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_handler_is_removed_on_exit(self) -> None:
        with interrupt_aborts(AbortSignal()):
            pass

        assert not asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
