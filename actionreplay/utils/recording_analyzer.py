"""
Static analysis of a recording: what it contains, which pages it visits and how it
is paced. Used by the `info` CLI command.
"""

import statistics
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

from actionreplay.schemas.analysis import (
    ActionStatistics,
    FlowType,
    GapStatistics,
    NavigationInsights,
    RecordingAnalysis,
    RecordingMetadata,
    TimingAnalysis,
    ViewportCategory,
    ViewportInfo,
)
from actionreplay.schemas.recording import Recording

MOBILE_MAX_WIDTH = 768
TABLET_MAX_WIDTH = 1024


def normalize_url(url: str) -> str:
    """Drop the fragment and a trailing slash so equivalent page URLs compare equal."""
    if not url:
        return ""

    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url

    path = parts.path
    if path == "/" or path == "":
        if not parts.query:
            return f"{parts.scheme}://{parts.netloc}"
        path = "/"
    elif path.endswith("/"):
        path = path[:-1]

    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class RecordingAnalyzer:
    """Builds a `RecordingAnalysis` for a recording."""

    def analyze(self, recording: Recording, file_path: str) -> RecordingAnalysis:
        return RecordingAnalysis(
            file=PurePath(file_path.replace("\\", "/")).name or file_path,
            metadata=self._extract_metadata(recording),
            viewport=self._analyze_viewport(recording),
            statistics=self._analyze_actions(recording),
            timing=self._analyze_timing(recording),
            navigation=self._analyze_navigation(recording),
        )

    @staticmethod
    def _extract_metadata(recording: Recording) -> RecordingMetadata:
        return RecordingMetadata(
            test_name=recording.test_name,
            recording_id=recording.id,
            start_url=recording.url,
            recorded_at=recording.start_time,
            completed_at=recording.end_time or recording.start_time,
            schema_version=recording.version or "unknown",
            user_agent=recording.user_agent,
        )

    @staticmethod
    def _analyze_viewport(recording: Recording) -> ViewportInfo:
        width = recording.viewport.width
        height = recording.viewport.height

        if width <= 0 or height <= 0:
            category = ViewportCategory.UNKNOWN
        elif width <= MOBILE_MAX_WIDTH:
            category = ViewportCategory.MOBILE
        elif width <= TABLET_MAX_WIDTH:
            category = ViewportCategory.TABLET
        else:
            category = ViewportCategory.DESKTOP

        return ViewportInfo(category=category, width=width, height=height)

    @staticmethod
    def _analyze_actions(recording: Recording) -> ActionStatistics:
        total = len(recording.actions)
        if total == 0:
            return ActionStatistics(total=0)

        by_type: Dict[str, int] = {}
        by_page: Dict[str, int] = {}
        for action in recording.actions:
            by_type[action.type] = by_type.get(action.type, 0) + 1
            if action.url:
                page = normalize_url(action.url)
                by_page[page] = by_page.get(page, 0) + 1

        percentages = {action_type: count / total * 100 for action_type, count in by_type.items()}
        return ActionStatistics(
            total=total, by_type=by_type, by_page=by_page, percentages=percentages
        )

    @staticmethod
    def _analyze_timing(recording: Recording) -> TimingAnalysis:
        timestamps: List[float] = [
            float(action.timestamp) for action in recording.actions if action.timestamp > 0
        ]
        if not timestamps:
            return TimingAnalysis(recording_duration=0, action_span=0)

        started = _parse_iso(recording.start_time)
        ended = _parse_iso(recording.end_time) or started
        duration = (ended - started).total_seconds() * 1000 if started and ended else 0

        span = max(timestamps) - min(timestamps)
        gaps = [current - previous for previous, current in zip(timestamps, timestamps[1:])]
        if not gaps:
            return TimingAnalysis(recording_duration=duration, action_span=span)

        return TimingAnalysis(
            recording_duration=duration,
            action_span=span,
            gaps=GapStatistics(
                min=min(gaps),
                max=max(gaps),
                avg=sum(gaps) / len(gaps),
                median=statistics.median(gaps),
            ),
        )

    @staticmethod
    def _analyze_navigation(recording: Recording) -> NavigationInsights:
        pages = {normalize_url(action.url) for action in recording.actions if action.url}
        if not pages:
            return NavigationInsights(
                unique_pages=0, transitions=0, flow_type=FlowType.NOT_APPLICABLE
            )

        unique_pages = len(pages)
        return NavigationInsights(
            unique_pages=unique_pages,
            transitions=max(0, unique_pages - 1),
            flow_type=FlowType.SPA if unique_pages == 1 else FlowType.MPA,
        )
