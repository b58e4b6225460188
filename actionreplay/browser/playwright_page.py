"""
Playwright implementation of the page capability.

`PlaywrightPage` translates unified selector candidates into Playwright locators and
performs each recorded action type against the resolved element.

## Key Components

1. **PlaywrightPage** - `PageCapability` over a live `playwright.async_api.Page`
2. **STRATEGY_LOCATORS** - How each selector strategy becomes a locator
3. **KEY_MODIFIERS** - Recorded modifier names to Playwright key names

## Usage Examples

```python
page = PlaywrightPage(playwright_page, screenshot_manager=ScreenshotManager(run_id))
handles = await page.query_elements(SelectorWithMetadata(strategy="id", value="login"))
await page.dispatch_action(click_action, handles[0])
```
"""

from typing import Any, Callable, Dict, List, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from actionreplay.replication.errors import (
    ActionError,
    BrowserError,
    NavigationError,
    is_fatal_error,
)
from actionreplay.resolution.page import ElementHandle, ElementSnapshot, SelectorQueryError
from actionreplay.schemas.recording import (
    BaseAction,
    CheckpointAction,
    ClickAction,
    HoverAction,
    InputAction,
    KeypressAction,
    NavigationAction,
    ScrollAction,
    SelectAction,
    SelectorStrategy,
    SelectorWithMetadata,
    SubmitAction,
)
from actionreplay.utils.logging_config import logger
from actionreplay.utils.recording_analyzer import normalize_url
from actionreplay.utils.screenshot_manager import ScreenshotManager

Root = Union[Page, Locator]

KEY_MODIFIERS: Dict[str, str] = {
    "ctrl": "Control",
    "control": "Control",
    "shift": "Shift",
    "alt": "Alt",
    "meta": "Meta",
    "cmd": "Meta",
}

MOUSE_BUTTONS = ("left", "right", "middle")

SNAPSHOT_SCRIPT = """
elements => elements.map(el => ({
    text: el.innerText || el.textContent || '',
    alts: Array.from(el.querySelectorAll('img')).map(img => img.alt || ''),
    srcs: Array.from(el.querySelectorAll('img')).map(img => img.getAttribute('src') || ''),
    hrefs: Array.from(el.querySelectorAll('a')).map(a => a.getAttribute('href') || ''),
}))
"""


def scope_selector(scope: str) -> str:
    """A bare context hint such as `swal2-actions` is treated as a class name."""
    if scope[:1] in (".", "#", "[") or any(char in scope for char in " >:="):
        return scope
    return f".{scope}"


def quote_attribute(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _position_locator(root: Root, value: Any) -> Locator:
    if isinstance(value, dict):
        parent = value.get("parent") or "body"
        index = int(value.get("index", 0))
        return root.locator(parent).locator(f":scope > :nth-child({index + 1})")
    return root.locator(str(value))


STRATEGY_LOCATORS: Dict[SelectorStrategy, Callable[[Root, Any], Locator]] = {
    SelectorStrategy.ID: lambda root, value: root.locator(f"[id={quote_attribute(str(value))}]"),
    SelectorStrategy.DATA_TEST_ID: lambda root, value: root.get_by_test_id(str(value)),
    SelectorStrategy.ARIA_LABEL: lambda root, value: root.get_by_label(str(value)),
    SelectorStrategy.NAME: lambda root, value: root.locator(f"[name={quote_attribute(str(value))}]"),
    SelectorStrategy.TEXT_CONTENT: lambda root, value: root.get_by_text(str(value), exact=False),
    SelectorStrategy.TEXT: lambda root, value: root.get_by_text(str(value), exact=True),
    SelectorStrategy.HREF_PATTERN: lambda root, value: root.locator(
        f"a[href*={quote_attribute(str(value))}]"
    ),
    SelectorStrategy.SRC_PATTERN: lambda root, value: root.locator(
        f"img[src*={quote_attribute(str(value))}]"
    ),
    SelectorStrategy.CSS: lambda root, value: root.locator(str(value)),
    SelectorStrategy.CSS_SEMANTIC: lambda root, value: root.locator(str(value)),
    SelectorStrategy.XPATH: lambda root, value: root.locator(f"xpath={value}"),
    SelectorStrategy.POSITION: _position_locator,
}


class PlaywrightPage:
    """Page capability backed by a Playwright page.

    Attributes:
        page (Page): The live Playwright page
        screenshot_manager (Optional[ScreenshotManager]): Where screenshots are written
        timeout_ms (int): Timeout for individual Playwright operations
    """

    def __init__(
        self,
        page: Page,
        screenshot_manager: Optional[ScreenshotManager] = None,
        timeout_ms: int = 30000,
    ):
        self.page = page
        self.screenshot_manager = screenshot_manager
        self.timeout_ms = timeout_ms
        self._last_target: Optional[Locator] = None
        self._last_action_id: Optional[str] = None

    def _root(self, scope: Optional[str]) -> Root:
        if not scope:
            return self.page
        return self.page.locator(scope_selector(scope))

    def build_locator(self, candidate: SelectorWithMetadata, scope: Optional[str] = None) -> Locator:
        """Translate one selector candidate into a Playwright locator, optionally scoped."""
        root = self._root(scope)
        return STRATEGY_LOCATORS[candidate.strategy](root, candidate.value)

    async def query_elements(
        self, candidate: SelectorWithMetadata, scope: Optional[str] = None
    ) -> List[ElementHandle]:
        locator = self.build_locator(candidate, scope)
        try:
            count = await locator.count()
        except PlaywrightError as e:
            if is_fatal_error(str(e)):
                raise BrowserError(f"Page closed while querying {candidate.describe()}: {e}") from e
            raise SelectorQueryError(f"Cannot evaluate {candidate.describe()}: {e}") from e
        return [locator.nth(i) for i in range(count)]

    async def inspect_elements(
        self, element_type: str, container: Optional[str] = None
    ) -> List[ElementSnapshot]:
        locator = self._root(container).locator(element_type)
        try:
            raw: List[Dict[str, Any]] = await locator.evaluate_all(SNAPSHOT_SCRIPT)
        except PlaywrightError as e:
            if is_fatal_error(str(e)):
                raise BrowserError(f"Page closed while inspecting {element_type}: {e}") from e
            raise SelectorQueryError(f"Cannot inspect {element_type} elements: {e}") from e

        return [
            ElementSnapshot(
                handle=locator.nth(i),
                text=entry.get("text", ""),
                image_alts=entry.get("alts", []),
                image_srcs=entry.get("srcs", []),
                hrefs=entry.get("hrefs", []),
            )
            for i, entry in enumerate(raw)
        ]

    async def dispatch_action(self, action: BaseAction, handle: Optional[ElementHandle]) -> None:
        self._last_target = handle
        self._last_action_id = action.id

        try:
            await self._dispatch(action, handle)
        except PlaywrightError as e:
            raise ActionError(
                f"{action.type} failed: {e}", action_id=action.id, action_type=action.type
            ) from e

    async def _dispatch(self, action: BaseAction, handle: Optional[Locator]) -> None:
        match action:
            case ClickAction():
                await self._require(action, handle).click(
                    button=action.button if action.button in MOUSE_BUTTONS else "left",
                    click_count=max(action.click_count, 1),
                    modifiers=self._modifiers(action.modifiers),
                    timeout=self.timeout_ms,
                )
            case InputAction():
                target = self._require(action, handle)
                await target.fill("", timeout=self.timeout_ms)
                if action.simulation_type == "type" and action.typing_delay:
                    await target.press_sequentially(
                        action.value, delay=action.typing_delay, timeout=self.timeout_ms
                    )
                else:
                    await target.fill(action.value, timeout=self.timeout_ms)
            case SelectAction():
                target = self._require(action, handle)
                if action.selected_value is not None:
                    await target.select_option(value=action.selected_value, timeout=self.timeout_ms)
                elif action.selected_text is not None:
                    await target.select_option(label=action.selected_text, timeout=self.timeout_ms)
                elif action.selected_index is not None:
                    await target.select_option(index=action.selected_index, timeout=self.timeout_ms)
            case HoverAction():
                await self._require(action, handle).hover(timeout=self.timeout_ms)
            case ScrollAction():
                position = [action.scroll_x, action.scroll_y]
                if handle is None:
                    await self.page.evaluate("([x, y]) => window.scrollTo(x, y)", position)
                else:
                    await handle.evaluate(
                        "(el, [x, y]) => { el.scrollLeft = x; el.scrollTop = y; }", position
                    )
            case KeypressAction():
                combo = "+".join(self._modifiers(action.modifiers) + [action.key])
                await self.page.keyboard.press(combo)
            case SubmitAction():
                await self._require(action, handle).evaluate(
                    "form => form.requestSubmit ? form.requestSubmit() : form.submit()"
                )
            case NavigationAction():
                await self._navigate(action)
            case CheckpointAction():
                await self._verify_checkpoint(action, handle)
            case _:
                logger.debug(f"No browser effect for {action.type} action {action.id}")

    def _require(self, action: BaseAction, handle: Optional[Locator]) -> Locator:
        if handle is None:
            raise ActionError(
                f"{action.type} action has no target element",
                action_id=action.id,
                action_type=action.type,
            )
        return handle

    @staticmethod
    def _modifiers(modifiers: List[str]) -> List[str]:
        return [KEY_MODIFIERS.get(m.lower(), m) for m in modifiers]

    async def _navigate(self, action: NavigationAction) -> None:
        if not action.to:
            return
        if normalize_url(self.page.url) == normalize_url(action.to):
            logger.debug(f"Already at {action.to}, navigation {action.id} is a no-op")
            return

        wait_until = action.wait_until
        if wait_until not in ("load", "domcontentloaded", "networkidle", "commit"):
            wait_until = "load"
        try:
            await self.page.goto(action.to, wait_until=wait_until, timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {action.to} failed: {e}") from e

    async def _verify_checkpoint(self, action: CheckpointAction, handle: Optional[Locator]) -> None:
        match action.check_type:
            case "urlMatch":
                if action.expected_url and normalize_url(self.page.url) != normalize_url(
                    action.expected_url
                ):
                    raise NavigationError(
                        f"Expected URL {action.expected_url}, page is at {self.page.url}"
                    )
            case "elementVisible":
                if not await self._require(action, handle).is_visible():
                    raise ActionError(
                        "Checkpoint element is not visible",
                        action_id=action.id,
                        action_type=action.type,
                    )
            case "elementText":
                text = await self._require(action, handle).inner_text(timeout=self.timeout_ms)
                if action.expected_value and action.expected_value not in text:
                    raise ActionError(
                        f"Expected text '{action.expected_value}', found '{text.strip()}'",
                        action_id=action.id,
                        action_type=action.type,
                    )
            case _:
                await self.page.wait_for_load_state("load", timeout=self.timeout_ms)

    async def capture_screenshot(self, action: BaseAction, label: str) -> Optional[str]:
        """Screenshot the viewport, outlining the action's element when it was dispatched."""
        if self.screenshot_manager is None:
            return None

        highlight = None
        if self._last_target is not None and self._last_action_id == action.id:
            try:
                highlight = await self._last_target.bounding_box(timeout=2000)
            except PlaywrightError:
                highlight = None

        path = await self.screenshot_manager.take_screenshot(
            self.page, f"{label}_{action.type}", highlight=highlight
        )
        return str(path)

    async def video_path(self) -> Optional[str]:
        if self.page.video is None:
            return None
        return str(await self.page.video.path())
