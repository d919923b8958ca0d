"""Tool menu sent to the model so it knows which operations exist.

Every data tool tells the model to copy column names character for character
from the ``[CSV columns: ...]`` line that prefixes each user message.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

COL_NOTE = (
    "Use the exact column name as it appears in the [CSV columns: ...] header at the top "
    "of the message; copy it character-for-character, preserving spaces and capitalisation."
)


class ToolDeclaration(BaseModel):
    """Name, description and JSON-schema parameters of one callable tool."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


def _object(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


TOOL_DECLARATIONS: list[ToolDeclaration] = [
    ToolDeclaration(
        name="compute_column_stats",
        description=(
            "Compute descriptive statistics (mean, median, std, min, max, count) for a numeric column. "
            + COL_NOTE
        ),
        parameters=_object(
            {
                "column": {
                    "type": "string",
                    "description": (
                        "Exact column name copied from [CSV columns: ...]. Example: if the header says "
                        '"Favorite Count" pass "Favorite Count", not "favorite_count".'
                    ),
                },
            },
            ["column"],
        ),
    ),
    ToolDeclaration(
        name="get_value_counts",
        description="Count occurrences of each unique value in a column (for categorical data). " + COL_NOTE,
        parameters=_object(
            {
                "column": {"type": "string", "description": "Exact column name copied from [CSV columns: ...]."},
                "top_n": {"type": "number", "description": "How many top values to return (default 10)."},
            },
            ["column"],
        ),
    ),
    ToolDeclaration(
        name="get_top_rows",
        description=(
            "Return the top or bottom N rows sorted by any numeric column, including the computed "
            '"engagement" column (favorites / views). Returns the row text plus key metrics. '
            "Use this for best/worst/most/least performing posts or videos, e.g. "
            '"show me the 10 most engaging tweets" or "what are the least viewed posts".'
        ),
        parameters=_object(
            {
                "sort_column": {
                    "type": "string",
                    "description": (
                        'Metric to sort by. Use "engagement" for the engagement ratio, or any exact '
                        "column name from [CSV columns: ...]."
                    ),
                },
                "n": {"type": "number", "description": "Number of rows to return (default 10)."},
                "ascending": {
                    "type": "boolean",
                    "description": "false = highest first (default), true = lowest first.",
                },
            },
            ["sort_column"],
        ),
    ),
    ToolDeclaration(
        name="compute_stats_json",
        description=(
            "Compute mean, median, standard deviation, min, and max for any numeric field in channel "
            "video JSON. Common fields: view_count, like_count, comment_count, duration_seconds."
        ),
        parameters=_object(
            {
                "column": {
                    "type": "string",
                    "description": "Exact field name from the JSON (e.g. view_count, like_count).",
                },
            },
            ["column"],
        ),
    ),
    ToolDeclaration(
        name="plot_metric_vs_time",
        description=(
            "Plot any numeric field (views, likes, comments, etc.) against time. Returns a chart. "
            "Use when the user asks to visualise a metric over time."
        ),
        parameters=_object(
            {
                "metric": {
                    "type": "string",
                    "description": "Numeric field to plot (e.g. view_count, like_count, comment_count).",
                },
            },
            ["metric"],
        ),
    ),
    ToolDeclaration(
        name="describe_dataset",
        description=(
            "Return a profile of every column (numeric ranges, top categorical values) with exact "
            "column names. Use when unsure which columns exist."
        ),
        parameters=_object({}, []),
    ),
    ToolDeclaration(
        name="play_video",
        description=(
            "Open a video from the loaded channel data. The user can pick by title "
            '(e.g. "play the asbestos video"), ordinal ("play the first video") or "most viewed". '
            "Returns a card with title, thumbnail and link."
        ),
        parameters=_object(
            {
                "selector": {
                    "type": "string",
                    "description": (
                        'How to pick the video: "first", "last", "most viewed", "least viewed", '
                        "or a partial title match."
                    ),
                },
            },
            ["selector"],
        ),
    ),
    ToolDeclaration(
        name="generate_image",
        description=(
            "Generate an image from a text prompt and an optional anchor/reference image. "
            "Use when the user wants to create or edit an image."
        ),
        parameters=_object(
            {
                "prompt": {"type": "string", "description": "Text description of the image to generate."},
                "anchorImageBase64": {
                    "type": "string",
                    "description": "Optional base64-encoded reference image for style or context.",
                },
            },
            ["prompt"],
        ),
    ),
]

TOOL_NAMES = tuple(d.name for d in TOOL_DECLARATIONS)
