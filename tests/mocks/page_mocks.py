import asyncio
from collections import Counter
from typing import Any, Dict, List, Optional, Set, Tuple

from actionreplay.resolution.page import ElementSnapshot, SelectorQueryError
from actionreplay.schemas.recording import BaseAction, SelectorWithMetadata


class FakePage:
    """In-memory page capability for resolver and engine tests.

    Elements are plain strings looked up by selector value. Scoped lookups use
    `(scope, value)` keys. A selector listed in `late` stays empty for that many
    queries before its elements appear.
    """

    def __init__(
        self,
        elements: Optional[Dict[str, List[Any]]] = None,
        scoped: Optional[Dict[Tuple[str, str], List[Any]]] = None,
        snapshots: Optional[Dict[str, List[ElementSnapshot]]] = None,
        invalid: Optional[Set[str]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        dispatch_delay: float = 0.0,
        late: Optional[Dict[str, int]] = None,
    ):
        self.elements = elements or {}
        self.scoped = scoped or {}
        self.snapshots = snapshots or {}
        self.invalid = invalid or set()
        self.failures = failures or {}
        self.dispatch_delay = dispatch_delay
        self.late = late or {}
        self._query_counts: Counter = Counter()

        self.queries: List[Tuple[str, Any, Optional[str]]] = []
        self.dispatched: List[Tuple[str, Any]] = []
        self.screenshots: List[str] = []

    async def query_elements(
        self, candidate: SelectorWithMetadata, scope: Optional[str] = None
    ) -> List[Any]:
        self.queries.append((candidate.strategy.value, candidate.value, scope))
        key = str(candidate.value)
        if key in self.invalid:
            raise SelectorQueryError(f"bad selector {key}")
        self._query_counts[key] += 1
        if self._query_counts[key] <= self.late.get(key, 0):
            return []
        if scope is not None:
            return list(self.scoped.get((scope, key), []))
        return list(self.elements.get(key, []))

    async def inspect_elements(
        self, element_type: str, container: Optional[str] = None
    ) -> List[ElementSnapshot]:
        return list(self.snapshots.get(element_type, []))

    async def dispatch_action(self, action: BaseAction, handle: Any) -> None:
        self.dispatched.append((action.id, handle))
        if self.dispatch_delay:
            await asyncio.sleep(self.dispatch_delay)
        if action.id in self.failures:
            raise self.failures[action.id]

    async def capture_screenshot(self, action: BaseAction, label: str) -> str:
        path = f"/tmp/screens/{action.id}_{label}.png"
        self.screenshots.append(path)
        return path


class RecordingSubscriber:
    """Collects progress events delivered by a ProgressChannel subscription."""

    def __init__(self) -> None:
        self.events: List[Any] = []
        self.errors: List[Exception] = []
        self.closed = 0

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)

    def on_close(self) -> None:
        self.closed += 1

    @property
    def types(self) -> List[str]:
        return [event.type for event in self.events]
