"""
Value types returned by `SelectorResolver.resolve`.

Resolution never raises for an element that simply cannot be found; it returns one
of the three outcomes below and leaves the escalation decision to the engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from actionreplay.resolution.page import ElementHandle

CONTENT_SIGNATURE_STRATEGY = "content-signature"


class FailureReason(str, Enum):
    NO_MATCH = "no-match"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class ResolvedElement:
    """A located element, or `handle=None` for actions that need no element."""

    action_id: str
    handle: Optional[ElementHandle]
    strategy: Optional[str] = None
    selector_used: Optional[str] = None
    low_confidence: bool = False
    match_index: int = 0
    match_count: int = 1


@dataclass(frozen=True)
class ResolutionFailure:
    action_id: str
    attempted_strategies: List[str] = field(default_factory=list)
    reason: FailureReason = FailureReason.NO_MATCH

    @property
    def message(self) -> str:
        tried = ", ".join(self.attempted_strategies) or "none"
        if self.reason == FailureReason.AMBIGUOUS:
            return f"Element for {self.action_id} is ambiguous (tried: {tried})"
        return f"Element not found for {self.action_id} (tried: {tried})"


@dataclass(frozen=True)
class ResolutionSkip:
    """An optional action whose element could not be found."""

    action_id: str
    attempted_strategies: List[str] = field(default_factory=list)
    reason: str = "element not found"


ResolutionOutcome = Union[ResolvedElement, ResolutionFailure, ResolutionSkip]
