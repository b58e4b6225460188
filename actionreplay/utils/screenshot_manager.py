"""
Screenshot management for replay runs.

Screenshots are stored per run under `<base_dir>/<run_id>/` with sequential,
descriptive file names. When the target element's bounding box is known it is
outlined in red on the saved image with Pillow, which makes failure screenshots
readable at a glance.

## Usage Examples

```python
manager = ScreenshotManager(run_id="run_abc", base_dir=Path("./screenshots"))
path = await manager.take_screenshot(page, "click", highlight={"x": 10, "y": 20, "width": 80, "height": 30})
```
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from PIL import Image, ImageDraw, UnidentifiedImageError
from playwright.async_api import Error as PlaywrightError

from actionreplay.utils.logging_config import logger

BoundingBox = Dict[str, float]


class ScreenshotManager:
    """Screenshot capture with element highlighting and organized file storage.

    Attributes:
        run_id (str): Id of the run the screenshots belong to
        screenshots_dir (Path): Directory the run's screenshots are written to
        screenshot_counter (int): Counter for sequential screenshot naming
    """

    def __init__(self, run_id: str, base_dir: Optional[Path] = None):
        self.run_id = run_id
        self.screenshots_dir = Path(base_dir or "./screenshots") / run_id
        self.screenshot_counter = 0

    def next_path(self, label: str) -> Path:
        """Reserve the next file path, e.g. `003_click_20240101_120000_123.png`."""
        self.screenshot_counter += 1
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:-3]
        safe_label = "".join(char if char.isalnum() or char in "-_" else "_" for char in label)
        return self.screenshots_dir / f"{self.screenshot_counter:03d}_{safe_label}_{timestamp}.png"

    async def take_screenshot(
        self, page: Any, label: str, highlight: Optional[BoundingBox] = None
    ) -> Path:
        """Capture the visible viewport.

        Args:
            page: Playwright page
            label (str): Short label used in the file name, usually the action type
            highlight (Optional[BoundingBox]): Viewport box to outline in red

        Returns:
            Path: Location of the saved screenshot
        """
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        path = self.next_path(label)

        try:
            await page.screenshot(
                path=str(path), full_page=False, timeout=5000, animations="disabled", caret="hide"
            )
        except PlaywrightError as e:
            logger.warning(f"Fast screenshot failed, trying fallback: {e}")
            await page.screenshot(path=str(path), full_page=False, timeout=15000)

        if highlight:
            self.draw_highlight(path, highlight)

        logger.replay_log(f"📸 Screenshot saved: {path}")
        return path

    def draw_highlight(self, screenshot_path: Path, box: BoundingBox) -> bool:
        """Outline `box` with a red 3px rectangle on the saved image.

        Returns:
            bool: Whether the rectangle was drawn
        """
        if not all(key in box for key in ("x", "y", "width", "height")):
            logger.warning(f"Invalid highlight box missing required keys: {box}")
            return False
        if box["width"] <= 0 or box["height"] <= 0:
            return False

        try:
            with Image.open(screenshot_path) as img:
                width, height = img.size
                x1 = max(0.0, min(float(box["x"]), width))
                y1 = max(0.0, min(float(box["y"]), height))
                x2 = max(0.0, min(float(box["x"] + box["width"]), width))
                y2 = max(0.0, min(float(box["y"] + box["height"]), height))

                ImageDraw.Draw(img).rectangle((x1, y1, x2, y2), outline="red", width=3)
                img.save(screenshot_path)
        except (OSError, UnidentifiedImageError) as e:
            logger.warning(f"Failed to draw highlight on {screenshot_path}: {e}")
            return False

        return True

    def get_screenshots_dir(self) -> Path:
        return self.screenshots_dir
