"""
Static analysis report models produced by `RecordingAnalyzer`.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnalysisModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ViewportCategory(str, Enum):
    MOBILE = "Mobile"
    TABLET = "Tablet"
    DESKTOP = "Desktop"
    UNKNOWN = "Unknown"


class FlowType(str, Enum):
    SPA = "SPA"
    MPA = "MPA"
    NOT_APPLICABLE = "N/A"


class RecordingMetadata(AnalysisModel):
    test_name: str
    recording_id: str
    start_url: str = Field(alias="startURL")
    recorded_at: str
    completed_at: str
    schema_version: str
    user_agent: str


class ViewportInfo(AnalysisModel):
    category: ViewportCategory
    width: int
    height: int


class ActionStatistics(AnalysisModel):
    total: int
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_page: Dict[str, int] = Field(default_factory=dict)
    percentages: Dict[str, float] = Field(default_factory=dict)


class GapStatistics(AnalysisModel):
    min: float = 0
    max: float = 0
    avg: float = 0
    median: float = 0


class TimingAnalysis(AnalysisModel):
    recording_duration: float
    action_span: float
    gaps: GapStatistics = Field(default_factory=GapStatistics)


class NavigationInsights(AnalysisModel):
    unique_pages: int
    transitions: int
    flow_type: FlowType


class RecordingAnalysis(AnalysisModel):
    """Complete analysis of one recording file."""

    file: str
    metadata: RecordingMetadata
    viewport: Optional[ViewportInfo] = None
    statistics: ActionStatistics
    timing: TimingAnalysis
    navigation: NavigationInsights

    def to_json_dict(self) -> Dict[str, object]:
        data = self.model_dump(mode="json", by_alias=True, exclude={"file"})
        return {"version": "1.0", **data}
