"""
Browser lifecycle for a replay run.

`BrowserSession` launches the requested browser engine, opens a context matching the
recording's viewport and user agent, loads the recording's start URL and hands back a
`PlaywrightPage`. Everything is torn down when the `async with` block exits.

## Usage Examples

```python
async with BrowserSession(recording, options) as page:
    engine = ReplayEngine(page, channel=channel)
    result = await engine.execute(recording, options)
```
"""

from pathlib import Path
from typing import Any, Dict, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from actionreplay.browser.playwright_page import PlaywrightPage
from actionreplay.replication.errors import BrowserError, NavigationError
from actionreplay.schemas.recording import Recording
from actionreplay.schemas.run import RunOptions, ScreenshotMode
from actionreplay.utils.logging_config import logger
from actionreplay.utils.screenshot_manager import ScreenshotManager


class BrowserSession:
    """Async context manager owning the Playwright browser used by one run.

    Attributes:
        recording (Recording): Recording whose environment is reproduced
        options (RunOptions): Browser engine, headless flag, timeout and video settings
        screenshots_dir (Path): Root directory for screenshots
        videos_dir (Path): Directory for recorded videos
    """

    def __init__(
        self,
        recording: Recording,
        options: RunOptions,
        screenshots_dir: Optional[Path] = None,
        videos_dir: Optional[Path] = None,
    ):
        self.recording = recording
        self.options = options
        self.screenshots_dir = Path(screenshots_dir or "./screenshots")
        self.videos_dir = Path(videos_dir or "./videos")

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    def _context_options(self) -> Dict[str, Any]:
        context_options: Dict[str, Any] = {
            "viewport": {
                "width": self.recording.viewport.width,
                "height": self.recording.viewport.height,
            },
            "user_agent": self.recording.user_agent,
        }
        if self.recording.device_pixel_ratio:
            context_options["device_scale_factor"] = self.recording.device_pixel_ratio
        if self.options.video:
            self.videos_dir.mkdir(parents=True, exist_ok=True)
            context_options["record_video_dir"] = str(self.videos_dir)
            context_options["record_video_size"] = context_options["viewport"]
        return context_options

    async def __aenter__(self) -> PlaywrightPage:
        try:
            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, self.options.browser.value)
            self._browser = await launcher.launch(headless=self.options.headless)
            self._context = await self._browser.new_context(**self._context_options())
            self._page = await self._context.new_page()
            self._page.set_default_timeout(self.options.timeout)
        except PlaywrightError as e:
            await self.close()
            raise BrowserError(f"Failed to start {self.options.browser.value}: {e}") from e

        logger.replay_log(
            f"🌐 {self.options.browser.value} started (headless={self.options.headless}), "
            f"opening {self.recording.url}"
        )

        try:
            await self._page.goto(
                self.recording.url, wait_until="domcontentloaded", timeout=self.options.timeout
            )
        except PlaywrightError as e:
            await self.close()
            raise NavigationError(f"Failed to open {self.recording.url}: {e}") from e

        screenshot_manager = None
        if self.options.effective_screenshot_mode != ScreenshotMode.NEVER:
            run_id = self.options.run_id or self.recording.id
            screenshot_manager = ScreenshotManager(run_id, base_dir=self.screenshots_dir)

        return PlaywrightPage(
            self._page, screenshot_manager=screenshot_manager, timeout_ms=self.options.timeout
        )

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close page, context and browser, then stop Playwright. Safe to call twice."""
        for closable in (self._page, self._context, self._browser):
            if closable is None:
                continue
            try:
                await closable.close()
            except PlaywrightError as e:
                logger.warning(f"⚠️ Error while closing browser resources: {e}")

        if self._playwright is not None:
            await self._playwright.stop()

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
