"""
Replay engine: executes a canonical recording against a page capability.

The engine is a per-run state machine. It normalizes the recording, orders the
actions, reproduces the recorded timing, resolves and dispatches each action in
turn, and reports every step on the run's progress channel. It never talks to the
browser directly; all page access goes through the `PageCapability` it was given.

## Run Flow

1. `run:started` is published
2. for each action: abort check, timing delay, abort check, `action:started`,
   resolution and dispatch bounded by the action timeout and the abort signal,
   then exactly one of `action:success`, `action:failed` or `action:skipped`
3. exactly one `run:completed`, or `run:error` for a fault outside the per-action
   boundary

## Usage Examples

```python
from actionreplay.replication.engine import ReplayEngine
from actionreplay.schemas.run import RunOptions, TimingMode

engine = ReplayEngine(page, channel=channel)
result = await engine.execute(recording, RunOptions(timing_mode=TimingMode.FAST))
```
"""

import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from cuid2 import Cuid as CUID
from pydantic import ValidationError

from actionreplay.events.channel import ProgressChannel
from actionreplay.events.transports import NullTransport
from actionreplay.normalization.normalizer import RecordingNormalizer
from actionreplay.replication.errors import (
    ActionTimeoutError,
    ConfigurationError,
    RunCancelledError,
    SelectorError,
    is_fatal_error,
)
from actionreplay.replication.state import ActionState, RunState, RunStateMachine
from actionreplay.resolution.outcomes import (
    ResolutionFailure,
    ResolutionOutcome,
    ResolutionSkip,
    ResolvedElement,
)
from actionreplay.resolution.page import ElementHandle, PageCapability
from actionreplay.resolution.resolver import SelectorResolver
from actionreplay.schemas.progress import ActionSummary, CompletedRunStatus
from actionreplay.schemas.recording import BaseAction, Recording
from actionreplay.schemas.run import (
    ActionErrorDetail,
    RunOptions,
    RunResult,
    RunStatus,
    ScreenshotMode,
    SkippedAction,
)
from actionreplay.utils.cancellation import (
    DEFAULT_ABORT_REASON,
    AbortSignal,
    abortable_sleep,
    await_with_abort,
)
from actionreplay.utils.logging_config import logger

Dispatch = Callable[[BaseAction, Optional[ElementHandle]], Awaitable[None]]

COMPLETED_STATUS: Dict[RunStatus, CompletedRunStatus] = {
    RunStatus.SUCCESS: CompletedRunStatus.PASSED,
    RunStatus.FAILED: CompletedRunStatus.FAILED,
    RunStatus.PARTIAL: CompletedRunStatus.CANCELLED,
    RunStatus.CANCELLED: CompletedRunStatus.CANCELLED,
}

FINAL_RUN_STATE: Dict[RunStatus, RunState] = {
    RunStatus.SUCCESS: RunState.PASSED,
    RunStatus.FAILED: RunState.FAILED,
    RunStatus.PARTIAL: RunState.CANCELLED,
    RunStatus.CANCELLED: RunState.CANCELLED,
}


def build_execution_plan(actions: List[Any], relocated_ids: Optional[Set[str]] = None) -> List[Any]:
    """Order actions for execution by timestamp.

    The sort is stable on an effective timestamp. An input that normalization moved
    in front of its form's submit keeps its place: its effective timestamp is capped
    by the effective timestamp of the action that follows it.
    """
    relocated_ids = relocated_ids or set()
    effective: List[float] = [0.0] * len(actions)
    for index in range(len(actions) - 1, -1, -1):
        timestamp = float(actions[index].timestamp)
        if actions[index].id in relocated_ids and index + 1 < len(actions):
            timestamp = min(timestamp, effective[index + 1])
        effective[index] = timestamp

    order = sorted(range(len(actions)), key=lambda index: effective[index])
    return [actions[index] for index in order]


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RunContext:
    """Mutable bookkeeping of a single run; never shared between runs."""

    run_id: str
    recording: Recording
    options: RunOptions
    plan: List[Any]
    state: RunStateMachine
    started_at: float
    browser: str
    errors: List[ActionErrorDetail] = field(default_factory=list)
    skipped: List[SkippedAction] = field(default_factory=list)
    screenshots: List[str] = field(default_factory=list)
    actions_executed: int = 0
    cancelled: bool = False
    fatal: bool = False
    loop_started_at: Optional[float] = None

    @property
    def total(self) -> int:
        return len(self.plan)

    @property
    def abort_signal(self) -> Any:
        return self.options.abort_signal

    @property
    def aborted(self) -> bool:
        return self.abort_signal is not None and self.abort_signal.aborted

    def action_fields(self, index: int, action: BaseAction) -> Dict[str, Any]:
        return {
            "action_id": action.id,
            "action_type": action.type,
            "action_index": index,
            "total_actions": self.total,
            "browser": self.browser,
        }


class ReplayEngine:
    """Executes recordings against a page capability and reports progress.

    Args:
        page (PageCapability): Element query and action dispatch capability
        channel (Optional[ProgressChannel]): Progress channel; events are dropped when
            omitted
        resolver (Optional[SelectorResolver]): Element resolver
        normalizer (Optional[RecordingNormalizer]): Recording normalizer
        clock (Callable[[], float]): Monotonic clock in seconds

    Example:
        ```python
        engine = ReplayEngine(page, channel=ProgressChannel(RedisTransport(url)))
        result = await engine.execute(recording, RunOptions(continue_on_error=True))
        ```
    """

    def __init__(
        self,
        page: PageCapability,
        channel: Optional[ProgressChannel] = None,
        resolver: Optional[SelectorResolver] = None,
        normalizer: Optional[RecordingNormalizer] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.page = page
        self.channel = channel or ProgressChannel(NullTransport())
        self.resolver = resolver or SelectorResolver()
        self.normalizer = normalizer or RecordingNormalizer()
        self.clock = clock

    async def execute(
        self,
        recording: Recording,
        options: Optional[Union[RunOptions, Dict[str, Any]]] = None,
        dispatch: Optional[Dispatch] = None,
    ) -> RunResult:
        """Replay `recording` and return its terminal result.

        Args:
            recording (Recording): Structurally valid recording
            options (Optional[Union[RunOptions, Dict[str, Any]]]): Run options
            dispatch (Optional[Dispatch]): Overrides the page's `dispatch_action`

        Returns:
            RunResult: Always a terminal result; engine faults are reported through
            `RunResult.error` and a `run:error` event rather than raised
        """
        run_id = self._run_id(options)
        started_at = self.clock()
        state = RunStateMachine(run_id=run_id)
        ctx: Optional[RunContext] = None

        try:
            state.start()
            run_options = self._coerce_options(options, run_id)
            normalized = self.normalizer.normalize_with_report(recording)
            plan = build_execution_plan(
                list(normalized.recording.actions), normalized.report.relocated_action_ids
            )
            state.register_actions(len(plan))

            ctx = RunContext(
                run_id=run_id,
                recording=normalized.recording,
                options=run_options,
                plan=plan,
                state=state,
                started_at=started_at,
                browser=run_options.browser.value,
            )

            logger.replay_log(
                f"🚀 Starting replay of '{recording.test_name}' ({ctx.total} actions, run {run_id})"
            )
            await self.channel.publish_run_started(
                run_id,
                recording_id=recording.id,
                recording_name=recording.test_name,
                total_actions=ctx.total,
                browser=ctx.browser,
                actions=[ActionSummary(id=action.id, type=action.type) for action in plan],
            )

            await self._run_actions(ctx, dispatch or self.page.dispatch_action)

            result = await self._build_result(ctx)
            await self.channel.publish_run_completed(
                run_id,
                status=COMPLETED_STATUS[result.status],
                duration_ms=result.duration,
                actions_executed=result.actions_executed,
                actions_failed=result.actions_failed,
                actions_skipped=len(result.skipped_actions),
                video_path=result.video,
            )
            state.finish(FINAL_RUN_STATE[result.status])
            logger.replay_log(
                f"🏁 Replay {result.status.value}: {result.actions_executed} executed, "
                f"{result.actions_failed} failed, {len(result.skipped_actions)} skipped "
                f"in {result.duration}ms"
            )
            return result

        except Exception as e:
            return await self._fault(run_id, state, ctx, started_at, e, recording)

    async def _run_actions(self, ctx: RunContext, dispatch: Dispatch) -> None:
        ctx.loop_started_at = self.clock()

        for index, action in enumerate(ctx.plan):
            if ctx.aborted:
                ctx.cancelled = True
                break

            delay_ms = self._delay_before(ctx, index)
            if delay_ms > 0:
                logger.debug(f"⏱️ Waiting {delay_ms:.0f}ms before {action.id}")
                completed = await abortable_sleep(delay_ms / 1000, ctx.abort_signal)
                if not completed:
                    ctx.cancelled = True
                    break

            if ctx.aborted:
                ctx.cancelled = True
                break

            outcome = await self._run_action(ctx, index, action, dispatch)
            if ctx.cancelled:
                break
            if outcome == ActionState.FAILED and ctx.fatal:
                logger.replay_log(f"🛑 Page is gone after {action.id}, stopping the run")
                break
            if outcome == ActionState.FAILED and not ctx.options.continue_on_error:
                logger.replay_log(f"🛑 Stopping after failed action {action.id}")
                break

        if ctx.cancelled:
            reason = ctx.abort_signal.reason if ctx.abort_signal is not None else None
            logger.replay_log(f"🛑 Run {ctx.run_id} cancelled: {reason or DEFAULT_ABORT_REASON}")

    def _delay_before(self, ctx: RunContext, index: int) -> float:
        """Milliseconds to wait before action `index` to reproduce the recorded pacing."""
        if index == 0 or not ctx.options.timing_active or ctx.loop_started_at is None:
            return 0.0

        offset = float(ctx.plan[index].timestamp) - float(ctx.plan[0].timestamp)
        target = offset * ctx.options.effective_multiplier
        elapsed = (self.clock() - ctx.loop_started_at) * 1000
        return min(target - elapsed, float(ctx.options.max_action_delay))

    async def _run_action(
        self, ctx: RunContext, index: int, action: BaseAction, dispatch: Dispatch
    ) -> ActionState:
        fields = ctx.action_fields(index, action)
        await self.channel.publish_action_started(ctx.run_id, **fields)
        ctx.state.move_action(index, ActionState.RUNNING)
        logger.replay_log(f"▶️ [{index + 1}/{ctx.total}] {action.type} {action.id}")

        started = self.clock()
        outcome: Optional[ResolutionOutcome] = None
        error_message: Optional[str] = None
        attempted: List[str] = []

        try:
            outcome = await await_with_abort(
                self._resolve_and_dispatch(action, dispatch, ctx.abort_signal),
                ctx.abort_signal,
                ctx.options.timeout / 1000,
                description=f"{action.type} {action.id}",
            )
        except RunCancelledError as e:
            ctx.cancelled = True
            await self._skip(ctx, index, action, str(e) or DEFAULT_ABORT_REASON)
            return ActionState.SKIPPED
        except SelectorError as e:
            error_message = str(e)
            attempted = e.attempted_strategies
        except ActionTimeoutError as e:
            error_message = str(e)
        except Exception as e:
            error_message = str(e) or type(e).__name__

        duration_ms = int((self.clock() - started) * 1000)

        if isinstance(outcome, ResolutionSkip):
            await self._skip(ctx, index, action, outcome.reason)
            return ActionState.SKIPPED

        if error_message is not None:
            screenshot = await self._capture(ctx, action, "failure", ScreenshotMode.ON_FAILURE)
            ctx.errors.append(
                ActionErrorDetail(
                    action_id=action.id,
                    action_type=action.type,
                    action_index=index,
                    error=error_message,
                    timestamp=_epoch_ms(),
                    attempted_strategies=attempted,
                    screenshot=screenshot,
                )
            )
            ctx.state.move_action(index, ActionState.FAILED)
            ctx.fatal = is_fatal_error(error_message)
            logger.error(f"❌ {action.type} {action.id} failed: {error_message}")
            await self.channel.publish_action_failed(
                ctx.run_id, error_message=error_message, duration_ms=duration_ms, **fields
            )
            return ActionState.FAILED

        resolved = outcome if isinstance(outcome, ResolvedElement) else None
        ctx.actions_executed += 1
        ctx.state.move_action(index, ActionState.SUCCESS)
        await self._capture(ctx, action, "success", ScreenshotMode.ALWAYS)
        logger.replay_log(f"✅ {action.type} {action.id} ({duration_ms}ms)")
        await self.channel.publish_action_success(
            ctx.run_id,
            duration_ms=duration_ms,
            selector_used=resolved.selector_used if resolved else None,
            **fields,
        )
        return ActionState.SUCCESS

    async def _resolve_and_dispatch(
        self, action: BaseAction, dispatch: Dispatch, abort_signal: Optional[AbortSignal]
    ) -> ResolutionOutcome:
        """Resolve then dispatch one action.

        Raises:
            SelectorError: If no element could be resolved for a required action
            RunCancelledError: If the run was aborted while resolving
        """
        outcome = await self.resolver.resolve(action, self.page, abort_signal=abort_signal)
        if isinstance(outcome, ResolutionFailure):
            raise SelectorError(
                outcome.message,
                action_id=action.id,
                action_type=action.type,
                attempted_strategies=outcome.attempted_strategies,
                reason=outcome.reason.value,
            )
        if isinstance(outcome, ResolvedElement):
            if abort_signal is not None:
                abort_signal.raise_if_aborted()
            if outcome.low_confidence:
                logger.warning(
                    f"⚠️ {action.id} resolved with low confidence via {outcome.selector_used}"
                )
            await dispatch(action, outcome.handle)
        return outcome

    async def _skip(self, ctx: RunContext, index: int, action: BaseAction, reason: str) -> None:
        ctx.skipped.append(
            SkippedAction(
                action_id=action.id, action_type=action.type, action_index=index, reason=reason
            )
        )
        ctx.state.move_action(index, ActionState.SKIPPED)
        logger.replay_log(f"⏭️ {action.type} {action.id} skipped: {reason}")
        await self.channel.publish_action_skipped(
            ctx.run_id, reason=reason, **ctx.action_fields(index, action)
        )

    async def _capture(
        self, ctx: RunContext, action: BaseAction, label: str, required_mode: ScreenshotMode
    ) -> Optional[str]:
        mode = ctx.options.effective_screenshot_mode
        if mode == ScreenshotMode.NEVER:
            return None
        if required_mode == ScreenshotMode.ALWAYS and mode != ScreenshotMode.ALWAYS:
            return None

        capture = getattr(self.page, "capture_screenshot", None)
        if capture is None:
            return None

        try:
            path = await capture(action, label)
        except Exception as e:
            logger.warning(f"⚠️ Screenshot for {action.id} failed: {e}")
            return None

        if path:
            ctx.screenshots.append(str(path))
            return str(path)
        return None

    async def _build_result(self, ctx: RunContext) -> RunResult:
        if ctx.cancelled:
            status = RunStatus.PARTIAL if ctx.actions_executed > 0 else RunStatus.CANCELLED
        elif ctx.errors:
            status = RunStatus.FAILED
        else:
            status = RunStatus.SUCCESS

        video: Optional[str] = None
        video_path = getattr(self.page, "video_path", None)
        if video_path is not None and ctx.options.video:
            video = await video_path()

        return RunResult(
            run_id=ctx.run_id,
            status=status,
            duration=int((self.clock() - ctx.started_at) * 1000),
            actions_total=ctx.total,
            actions_executed=ctx.actions_executed,
            actions_failed=len(ctx.errors),
            errors=list(ctx.errors),
            skipped_actions=list(ctx.skipped),
            screenshots=list(ctx.screenshots),
            video=video,
        )

    async def _fault(
        self,
        run_id: str,
        state: RunStateMachine,
        ctx: Optional[RunContext],
        started_at: float,
        error: Exception,
        recording: Any = None,
    ) -> RunResult:
        message = str(error) or type(error).__name__
        logger.error(f"💥 Replay engine fault in run {run_id}: {message}")

        if not state.is_terminal:
            if state.state == RunState.QUEUED:
                state.start()
            state.finish(RunState.FAILED)

        try:
            await self.channel.publish_run_error(
                run_id,
                error_message=message,
                error_stack="".join(traceback.format_exception(error)),
            )
        except Exception as publish_error:
            logger.error(f"💥 Could not publish run:error for {run_id}: {publish_error}")

        return RunResult(
            run_id=run_id,
            status=RunStatus.FAILED,
            duration=int((self.clock() - started_at) * 1000),
            actions_total=ctx.total if ctx else len(getattr(recording, "actions", None) or []),
            actions_executed=ctx.actions_executed if ctx else 0,
            actions_failed=len(ctx.errors) if ctx else 0,
            errors=list(ctx.errors) if ctx else [],
            skipped_actions=list(ctx.skipped) if ctx else [],
            screenshots=list(ctx.screenshots) if ctx else [],
            error=message,
        )

    @staticmethod
    def _run_id(options: Optional[Union[RunOptions, Dict[str, Any]]]) -> str:
        if isinstance(options, RunOptions) and options.run_id:
            return options.run_id
        if isinstance(options, dict):
            candidate = options.get("runId") or options.get("run_id")
            if isinstance(candidate, str) and candidate:
                return candidate
        return CUID().generate()

    @staticmethod
    def _coerce_options(
        options: Optional[Union[RunOptions, Dict[str, Any]]], run_id: str
    ) -> RunOptions:
        if options is None:
            return RunOptions(run_id=run_id)
        if isinstance(options, RunOptions):
            return options if options.run_id else options.model_copy(update={"run_id": run_id})
        if isinstance(options, dict):
            try:
                return RunOptions.model_validate({**options, "runId": run_id})
            except ValidationError as e:
                raise ConfigurationError(f"Invalid run options: {e}") from e
        raise ConfigurationError(f"Unsupported run options type: {type(options).__name__}")
