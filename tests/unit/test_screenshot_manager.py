import re
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image
from playwright.async_api import Error as PlaywrightError

from actionreplay.utils.screenshot_manager import ScreenshotManager

RED = (255, 0, 0)
WHITE = (255, 255, 255)


@pytest.fixture
def manager(tmp_path: Path) -> ScreenshotManager:
    return ScreenshotManager("run_1", base_dir=tmp_path)


@pytest.fixture
def blank_screenshot(tmp_path: Path) -> Path:
    path = tmp_path / "blank.png"
    Image.new("RGB", (40, 30), "white").save(path)
    return path


class TestScreenshotManager:
    """Test suite for `ScreenshotManager` file naming and highlighting."""

    # ? VALID CASE
    def test_paths_are_sequential_per_run(self, manager: ScreenshotManager, tmp_path: Path) -> None:
        first = manager.next_path("click")
        second = manager.next_path("input value")

        assert first.parent == tmp_path / "run_1"
        assert re.fullmatch(r"001_click_\d{8}_\d{6}_\d{3}\.png", first.name)
        assert re.fullmatch(r"002_input_value_\d{8}_\d{6}_\d{3}\.png", second.name)

    # ? VALID CASE
    def test_draw_highlight_outlines_the_box(
        self, manager: ScreenshotManager, blank_screenshot: Path
    ) -> None:
        drawn = manager.draw_highlight(
            blank_screenshot, {"x": 5, "y": 5, "width": 20, "height": 15}
        )

        assert drawn
        with Image.open(blank_screenshot) as img:
            rgb = img.convert("RGB")
            assert rgb.getpixel((5, 5)) == RED
            assert rgb.getpixel((25, 12)) == RED
            assert rgb.getpixel((15, 12)) == WHITE
            assert rgb.getpixel((35, 25)) == WHITE

    # ? VALID CASE
    def test_box_outside_the_image_is_clamped(
        self, manager: ScreenshotManager, blank_screenshot: Path
    ) -> None:
        drawn = manager.draw_highlight(
            blank_screenshot, {"x": 30, "y": 20, "width": 100, "height": 100}
        )

        assert drawn
        with Image.open(blank_screenshot) as img:
            assert img.size == (40, 30)
            assert img.convert("RGB").getpixel((30, 20)) == RED

    # ? INVALID CASE
    @pytest.mark.parametrize(
        "box",
        [
            {"x": 5, "y": 5, "width": 10},
            {"x": 5, "y": 5, "width": 0, "height": 10},
        ],
    )
    def test_invalid_box_is_not_drawn(
        self, manager: ScreenshotManager, blank_screenshot: Path, box: dict
    ) -> None:
        assert not manager.draw_highlight(blank_screenshot, box)

    # ? INVALID CASE
    def test_unreadable_image_is_not_drawn(self, manager: ScreenshotManager, tmp_path: Path) -> None:
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")

        assert not manager.draw_highlight(path, {"x": 0, "y": 0, "width": 5, "height": 5})

    # ? VALID CASE
    @pytest.mark.asyncio
    async def test_take_screenshot_falls_back_after_fast_capture_fails(
        self, manager: ScreenshotManager
    ) -> None:
        page = MagicMock()
        page.screenshot = AsyncMock(side_effect=[PlaywrightError("Timeout 5000ms exceeded"), None])

        path = await manager.take_screenshot(page, "click")

        assert path.parent.is_dir()
        assert page.screenshot.await_count == 2
        assert page.screenshot.await_args_list[1].kwargs == {
            "path": str(path),
            "full_page": False,
            "timeout": 15000,
        }
