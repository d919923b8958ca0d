"""Result variants produced by tool execution, and the dispatch log types."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class ToolError(BaseModel):
    """Input-shape or collaborator failure reported back to the model."""

    kind: Literal["error"] = "error"
    error: str


class ColumnStats(BaseModel):
    kind: Literal["column_stats"] = "column_stats"
    column: str
    count: int
    mean: float
    median: float
    std: float
    min: float
    max: float


class ValueCounts(BaseModel):
    kind: Literal["value_counts"] = "value_counts"
    column: str
    total_rows: int
    value_counts: dict[str, int]


class TopRows(BaseModel):
    kind: Literal["top_rows"] = "top_rows"
    sort_column: str
    direction: str
    count: int
    rows: list[dict[str, Any]]


class ChartPoint(BaseModel):
    date: str
    value: float
    name: str = ""


class MetricChart(BaseModel):
    """Time series tagged for chart rendering."""

    kind: Literal["chart"] = "chart"
    chart_type: Literal["metricVsTime"] = "metricVsTime"
    metric_column: str
    data: list[ChartPoint]
    truncated: bool = False


class DatasetSummary(BaseModel):
    kind: Literal["dataset_summary"] = "dataset_summary"
    rows: int
    columns: int
    summary: str


class VideoCard(BaseModel):
    kind: Literal["video_card"] = "video_card"
    title: str
    thumbnail: str = ""
    url: str


class GeneratedImage(BaseModel):
    kind: Literal["generated_image"] = "generated_image"
    data: str  # base64
    mime_type: str = "image/png"


ToolResult = Annotated[
    Union[
        ToolError,
        ColumnStats,
        ValueCounts,
        TopRows,
        MetricChart,
        DatasetSummary,
        VideoCard,
        GeneratedImage,
    ],
    Field(discriminator="kind"),
]


class ToolCallRecord(BaseModel):
    """One executed tool call, kept with its full (unsanitised) result."""

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: ToolResult


class DispatchOutcome(BaseModel):
    """Terminal output of one dispatch loop run."""

    text: str
    charts: list[MetricChart] = Field(default_factory=list)
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    rounds: int = 0
    round_limit_hit: bool = False
