"""
Progress event wire models.

Each event is a small JSON message published on a run's progress channel. The
`type` field is the discriminant; every event also carries `runId` and an ISO-8601
UTC `timestamp`.

| type             | extra fields                                                         |
|------------------|----------------------------------------------------------------------|
| run:started      | recordingId, recordingName, totalActions, browser, actions           |
| action:started   | actionId, actionType, actionIndex, totalActions                      |
| action:success   | ... durationMs, selectorUsed                                         |
| action:failed    | ... errorMessage, durationMs                                         |
| action:skipped   | ... reason                                                           |
| run:completed    | status, durationMs, actionsExecuted, actionsFailed, actionsSkipped   |
| run:error        | errorMessage, errorStack                                             |
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


def utc_timestamp() -> str:
    """Current time as ISO-8601 with millisecond precision and a `Z` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ProgressEventType(str, Enum):
    RUN_STARTED = "run:started"
    ACTION_STARTED = "action:started"
    ACTION_SUCCESS = "action:success"
    ACTION_FAILED = "action:failed"
    ACTION_SKIPPED = "action:skipped"
    RUN_COMPLETED = "run:completed"
    RUN_ERROR = "run:error"


TERMINAL_ACTION_EVENTS = (
    ProgressEventType.ACTION_SUCCESS.value,
    ProgressEventType.ACTION_FAILED.value,
    ProgressEventType.ACTION_SKIPPED.value,
)

TERMINAL_RUN_EVENTS = (
    ProgressEventType.RUN_COMPLETED.value,
    ProgressEventType.RUN_ERROR.value,
)


class CompletedRunStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BaseProgressEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    run_id: str
    timestamp: str = Field(default_factory=utc_timestamp)

    def to_message(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ActionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: str


class RunStartedEvent(BaseProgressEvent):
    type: Literal["run:started"] = "run:started"
    recording_id: str
    recording_name: Optional[str] = None
    total_actions: int
    browser: str
    actions: Optional[List[ActionSummary]] = None


class ActionEventFields(BaseProgressEvent):
    action_id: str
    action_type: str
    action_index: int
    total_actions: int
    browser: Optional[str] = None


class ActionStartedEvent(ActionEventFields):
    type: Literal["action:started"] = "action:started"


class ActionSuccessEvent(ActionEventFields):
    type: Literal["action:success"] = "action:success"
    duration_ms: int
    selector_used: Optional[str] = None


class ActionFailedEvent(ActionEventFields):
    type: Literal["action:failed"] = "action:failed"
    error_message: str
    duration_ms: int


class ActionSkippedEvent(ActionEventFields):
    type: Literal["action:skipped"] = "action:skipped"
    reason: str


class RunCompletedEvent(BaseProgressEvent):
    type: Literal["run:completed"] = "run:completed"
    status: CompletedRunStatus
    duration_ms: int
    actions_executed: int
    actions_failed: int
    actions_skipped: int
    video_path: Optional[str] = None


class RunErrorEvent(BaseProgressEvent):
    type: Literal["run:error"] = "run:error"
    error_message: str
    error_stack: Optional[str] = None


ProgressEvent = Annotated[
    Union[
        RunStartedEvent,
        ActionStartedEvent,
        ActionSuccessEvent,
        ActionFailedEvent,
        ActionSkippedEvent,
        RunCompletedEvent,
        RunErrorEvent,
    ],
    Field(discriminator="type"),
]

progress_event_adapter: TypeAdapter[ProgressEvent] = TypeAdapter(ProgressEvent)


def decode_progress_event(message: Union[str, bytes]) -> ProgressEvent:
    """Parse a JSON message into the matching event model.

    Raises:
        pydantic.ValidationError: If the message is not a known progress event
    """
    return progress_event_adapter.validate_json(message)
