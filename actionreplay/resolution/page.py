"""
The page capability consumed by the resolver and the engine.

The replay core never drives a browser itself. Everything it needs from a live page
is expressed by `PageCapability`: query elements for one selector candidate, inspect
candidate elements for the structural fallback, and dispatch one action against a
resolved element. `actionreplay.browser.playwright_page.PlaywrightPage` implements it
for a real browser and `actionreplay.browser.html_snapshot.HtmlSnapshotPage` for a
static HTML document.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, runtime_checkable

from actionreplay.schemas.recording import BaseAction, SelectorWithMetadata

ElementHandle = Any


class SelectorQueryError(Exception):
    """Raised by a page capability when a selector cannot be evaluated at all.

    The resolver treats it exactly like a query returning no elements.
    """

    pass


@dataclass
class ElementSnapshot:
    """Text content of one candidate element, used for content signature scoring."""

    handle: ElementHandle
    text: str = ""
    image_alts: List[str] = field(default_factory=list)
    image_srcs: List[str] = field(default_factory=list)
    hrefs: List[str] = field(default_factory=list)


@runtime_checkable
class PageCapability(Protocol):
    async def query_elements(
        self, candidate: SelectorWithMetadata, scope: Optional[str] = None
    ) -> List[ElementHandle]:
        """Return every live element matching `candidate`, optionally inside `scope`."""
        ...

    async def inspect_elements(
        self, element_type: str, container: Optional[str] = None
    ) -> List[ElementSnapshot]:
        """Return snapshots of every `element_type` element, optionally inside `container`."""
        ...

    async def dispatch_action(self, action: BaseAction, handle: Optional[ElementHandle]) -> None:
        """Perform `action` against `handle`; `handle` is None for untargeted actions."""
        ...
