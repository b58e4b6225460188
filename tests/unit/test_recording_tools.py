import json
from pathlib import Path

import pytest

from actionreplay.replication.errors import RecordingValidationError
from actionreplay.schemas.analysis import FlowType, ViewportCategory
from actionreplay.utils.recording_analyzer import RecordingAnalyzer, normalize_url
from actionreplay.utils.recording_loader import RecordingLoader
from tests.fixtures.models.schema_factories import (
    RecordingFactory,
    click_action,
    input_action,
    navigation_action,
)


class TestRecordingLoader:
    """Test suite for `RecordingLoader`.

    Structural problems are reported as `RecordingValidationError` with one detail
    line per problem, before any normalization happens.
    """

    # ? VALID CASE
    def test_load_file(self, tmp_path: Path) -> None:
        recording = RecordingFactory.custom_build(actions=[click_action("act_1", 1000)])
        path = tmp_path / "checkout.json"
        path.write_text(json.dumps(recording.to_json_dict()))

        loaded = RecordingLoader().load_file(path)

        assert loaded.id == "rec_test"
        assert loaded.actions[0].type == "click"

    # ? INVALID CASE
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(RecordingValidationError, match="not found"):
            RecordingLoader().load_file(tmp_path / "absent.json")

    # ? INVALID CASE
    def test_invalid_json(self) -> None:
        with pytest.raises(RecordingValidationError, match="not valid JSON"):
            RecordingLoader().load_string("{'actions': ")

    # ? INVALID CASE
    def test_non_object_document(self) -> None:
        with pytest.raises(RecordingValidationError, match="expected a JSON object"):
            RecordingLoader().load_data([1, 2, 3])

    # ? INVALID CASE
    def test_missing_fields_are_listed(self) -> None:
        data = RecordingFactory.custom_build().to_json_dict()
        del data["viewport"]
        data["actions"] = [{"id": "act_1", "type": "teleport", "timestamp": 1}]

        with pytest.raises(RecordingValidationError) as exc_info:
            RecordingLoader().load_data(data)

        details = exc_info.value.details
        assert any(line.startswith("viewport") for line in details)
        assert any(line.startswith("actions.0") for line in details)


class TestRecordingAnalyzer:
    """Test suite for `RecordingAnalyzer`."""

    # ? VALID CASE
    def test_single_page_recording(self) -> None:
        recording = RecordingFactory.custom_build(
            actions=[
                click_action("act_1", 1000),
                input_action("act_2", 1400),
                click_action("act_3", 2400, url="https://shop.example.com/#cart"),
            ]
        )

        analysis = RecordingAnalyzer().analyze(recording, "recordings/checkout.json")

        assert analysis.file == "checkout.json"
        assert analysis.viewport.category == ViewportCategory.DESKTOP
        assert analysis.statistics.by_type == {"click": 2, "input": 1}
        assert analysis.navigation.flow_type == FlowType.SPA
        assert analysis.timing.action_span == 1400
        assert analysis.timing.gaps.min == 400
        assert analysis.timing.gaps.max == 1000
        assert analysis.timing.gaps.median == 700
        assert analysis.timing.recording_duration == 30_000

    # ? VALID CASE
    def test_multi_page_recording(self) -> None:
        recording = RecordingFactory.custom_build(
            actions=[
                click_action("act_1", 1000),
                navigation_action("act_2", 1500, "https://shop.example.com/cart"),
            ],
            viewport={"width": 390, "height": 844},
        )

        analysis = RecordingAnalyzer().analyze(recording, "mobile.json")

        assert analysis.viewport.category == ViewportCategory.MOBILE
        assert analysis.navigation.flow_type == FlowType.MPA
        assert analysis.navigation.transitions == 1

    # ? VALID CASE
    def test_zero_sized_viewport_is_unknown(self) -> None:
        recording = RecordingFactory.custom_build(viewport={"width": 0, "height": 0})

        analysis = RecordingAnalyzer().analyze(recording, "headless.json")

        assert analysis.viewport.category == ViewportCategory.UNKNOWN

    # ? VALID CASE
    def test_empty_recording(self) -> None:
        analysis = RecordingAnalyzer().analyze(RecordingFactory.custom_build(), "empty.json")

        assert analysis.statistics.total == 0
        assert analysis.navigation.flow_type == FlowType.NOT_APPLICABLE
        assert analysis.timing.action_span == 0

    # ? VALID CASE
    def test_json_dict_is_camel_case(self) -> None:
        recording = RecordingFactory.custom_build(actions=[click_action("act_1", 1000)])

        data = RecordingAnalyzer().analyze(recording, "checkout.json").to_json_dict()

        assert data["version"] == "1.0"
        assert data["metadata"]["startURL"] == "https://shop.example.com/"
        assert data["navigation"]["flowType"] == "SPA"
        assert "file" not in data

    # ? VALID CASE
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://shop.example.com/", "https://shop.example.com"),
            ("https://shop.example.com/cart/", "https://shop.example.com/cart"),
            ("https://shop.example.com/cart#top", "https://shop.example.com/cart"),
            ("https://shop.example.com/?q=1", "https://shop.example.com/?q=1"),
            ("about:blank", "about:blank"),
        ],
    )
    def test_normalize_url(self, url: str, expected: str) -> None:
        assert normalize_url(url) == expected
