"""
Page capability implementations.

- `PlaywrightPage` drives a live browser page
- `BrowserSession` owns the browser lifecycle for one run
- `HtmlSnapshotPage` evaluates selectors against static HTML with lxml
"""

from .playwright_page import PlaywrightPage
from .session import BrowserSession
from .html_snapshot import HtmlSnapshotPage, describe_element

__all__ = [
    "PlaywrightPage",
    "BrowserSession",
    "HtmlSnapshotPage",
    "describe_element",
]
