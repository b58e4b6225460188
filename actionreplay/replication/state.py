"""
Run and action state machine.

```
run:     queued -> running -> passed | failed | cancelled
         queued -> skipped
action:  pending -> running -> success | failed | skipped
         pending -> skipped
```

Terminal states accept no further transitions; an illegal transition raises
`InvalidStateTransitionError` instead of silently corrupting the run bookkeeping.
"""

from enum import Enum
from typing import Dict, FrozenSet, List

from pydantic import BaseModel, Field

from actionreplay.replication.errors import InvalidStateTransitionError


class RunState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"


class ActionState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


RUN_TRANSITIONS: Dict[RunState, FrozenSet[RunState]] = {
    RunState.QUEUED: frozenset({RunState.RUNNING, RunState.SKIPPED}),
    RunState.RUNNING: frozenset({RunState.PASSED, RunState.FAILED, RunState.CANCELLED}),
    RunState.PASSED: frozenset(),
    RunState.FAILED: frozenset(),
    RunState.CANCELLED: frozenset(),
    RunState.SKIPPED: frozenset(),
}

ACTION_TRANSITIONS: Dict[ActionState, FrozenSet[ActionState]] = {
    ActionState.PENDING: frozenset({ActionState.RUNNING, ActionState.SKIPPED}),
    ActionState.RUNNING: frozenset({ActionState.SUCCESS, ActionState.FAILED, ActionState.SKIPPED}),
    ActionState.SUCCESS: frozenset(),
    ActionState.FAILED: frozenset(),
    ActionState.SKIPPED: frozenset(),
}


class RunStateMachine(BaseModel):
    """State of one run and of each of its actions.

    Actions never visited stay `pending`; after a fail-fast stop they are neither
    failed nor skipped, they were simply not attempted.
    """

    run_id: str
    state: RunState = RunState.QUEUED
    history: List[RunState] = Field(default_factory=lambda: [RunState.QUEUED])
    action_states: Dict[int, ActionState] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return not RUN_TRANSITIONS[self.state]

    def transition(self, target: RunState) -> None:
        if target not in RUN_TRANSITIONS[self.state]:
            raise InvalidStateTransitionError(
                f"Run {self.run_id} cannot move from {self.state.value} to {target.value}"
            )
        self.state = target
        self.history.append(target)

    def start(self) -> None:
        self.transition(RunState.RUNNING)

    def skip(self) -> None:
        """Mark a run that was never started as skipped."""
        self.transition(RunState.SKIPPED)

    def finish(self, target: RunState) -> None:
        self.transition(target)

    def register_actions(self, total: int) -> None:
        for index in range(total):
            self.action_states.setdefault(index, ActionState.PENDING)

    def action_state(self, index: int) -> ActionState:
        return self.action_states.get(index, ActionState.PENDING)

    def move_action(self, index: int, target: ActionState) -> None:
        current = self.action_state(index)
        if target not in ACTION_TRANSITIONS[current]:
            raise InvalidStateTransitionError(
                f"Action #{index} cannot move from {current.value} to {target.value}"
            )
        self.action_states[index] = target

    def count(self, target: ActionState) -> int:
        return sum(1 for state in self.action_states.values() if state == target)
