"""Tabular tools available to the model during a chat exchange.

Every public function takes a :class:`~tabchat.query.loaders.Dataset` and the
model-supplied arguments and returns one of the result variants in
:mod:`tabchat.query.results`.  Input-shape problems (unknown column, no
numeric values, nothing matched) come back as :class:`ToolError` so the
model can retry with different arguments; they are never raised.
"""

from __future__ import annotations

import csv
import io
import math
import re
from typing import Any, Literal

from pydantic import BaseModel

from .columns import (
    ENGAGEMENT_COLUMN,
    cell_text,
    detect_date_column,
    detect_favorite_column,
    detect_text_column,
    detect_view_column,
    is_blank,
    parse_number,
    resolve_column,
)
from .loaders import Dataset
from .results import (
    ChartPoint,
    ColumnStats,
    DatasetSummary,
    MetricChart,
    ToolError,
    TopRows,
    ValueCounts,
    VideoCard,
)

_SLIM_PATTERNS = (
    re.compile(r"^text$", re.IGNORECASE),
    re.compile(r"^language$", re.IGNORECASE),
    re.compile(r"^type$", re.IGNORECASE),
    re.compile(r"^view.?count$", re.IGNORECASE),
    re.compile(r"^reply.?count$", re.IGNORECASE),
    re.compile(r"^retweet.?count$", re.IGNORECASE),
    re.compile(r"^quote.?count$", re.IGNORECASE),
    re.compile(r"^favorite.?count$", re.IGNORECASE),
    re.compile(r"^(created.?at|timestamp|date)$", re.IGNORECASE),
    re.compile(r"^engagement$", re.IGNORECASE),
)


def _fmt(value: float) -> float:
    return round(value, 4)


def _display_number(value: float | None) -> str:
    if value is None:
        return "null"
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


def _available(dataset: Dataset) -> str:
    return ", ".join(dataset.headers)


def _numbers(series):
    """Float Series of *series* through :func:`parse_number`; NaN where not numeric."""
    import pandas as pd

    return pd.to_numeric(series.map(parse_number), errors="coerce").astype(float)


def _finite(numbers):
    return numbers[numbers.map(math.isfinite).astype(bool)]


def _non_blank(series):
    return series[series.map(lambda v: not is_blank(v)).astype(bool)]


def _ranked_counts(series):
    """Text frequencies, most frequent first; ties keep first-seen order."""
    counts = series.map(cell_text).value_counts(sort=False)
    return counts.sort_values(ascending=False, kind="stable")


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def compute_column_stats(
    dataset: Dataset,
    column: str,
    *,
    json_source: bool = False,
) -> ColumnStats | ToolError:
    """Count, mean, median, population std, min and max of a numeric column.

    Infinite values are parsed but left out of the aggregate.
    """
    col = resolve_column(dataset.headers, column) or ""
    values = _finite(_numbers(dataset.series(col)))
    if values.empty:
        if json_source:
            return ToolError(error=f'No numeric values in "{col}". Available: {_available(dataset)}')
        return ToolError(
            error=f'No numeric values found in column "{col}". Available columns: {_available(dataset)}'
        )
    return ColumnStats(
        column=col,
        count=int(values.size),
        mean=_fmt(float(values.mean())),
        median=_fmt(float(values.median())),
        std=_fmt(float(values.std(ddof=0))),
        min=_fmt(float(values.min())),
        max=_fmt(float(values.max())),
    )


def get_value_counts(dataset: Dataset, column: str, top_n: int = 10) -> ValueCounts:
    """Frequency of each non-empty value, most frequent first.

    Ties keep the order in which the values were first seen.
    """
    col = resolve_column(dataset.headers, column) or ""
    ranked = _ranked_counts(_non_blank(dataset.series(col))).head(max(0, top_n))
    return ValueCounts(
        column=col,
        total_rows=len(dataset.rows),
        value_counts={str(value): int(count) for value, count in ranked.items()},
    )


def get_top_rows(
    dataset: Dataset,
    sort_column: str,
    n: int = 10,
    ascending: bool = False,
    *,
    text_chars: int = 150,
) -> TopRows | ToolError:
    """Top (or bottom) *n* rows by a numeric column, projected to key fields.

    Rows whose sort value is not numeric are kept, in their original order,
    after every numeric row.  When no row is numeric at all the result is an
    error naming the available columns, rather than the first *n* rows
    unsorted.
    """
    col = resolve_column(dataset.headers, sort_column) or ""
    keys = _numbers(dataset.series(col))
    if not keys.notna().any():
        return ToolError(
            error=f'No rows found. Column "{col}" may not exist. Available: {_available(dataset)}'
        )
    order = keys.sort_values(ascending=ascending, kind="stable", na_position="last").index
    ordered = [dataset.rows[i] for i in order]

    text_col = detect_text_column(dataset.headers)
    fav_col = detect_favorite_column(dataset.headers)
    view_col = detect_view_column(dataset.headers)
    has_engagement = ENGAGEMENT_COLUMN in dataset.headers

    projected: list[dict[str, Any]] = []
    for rank, row in enumerate(ordered[: max(0, n)], start=1):
        out: dict[str, Any] = {"rank": rank}
        if text_col:
            out["text"] = cell_text(row.get(text_col))[:text_chars]
        if fav_col:
            out[fav_col] = row.get(fav_col)
        if view_col:
            out[view_col] = row.get(view_col)
        if has_engagement:
            out[ENGAGEMENT_COLUMN] = row.get(ENGAGEMENT_COLUMN)
        if col not in out:
            out[col] = row.get(col)
        projected.append(out)

    if not projected:
        return ToolError(error=f'No rows found. Column "{col}" may not exist. Available: {_available(dataset)}')

    return TopRows(
        sort_column=col,
        direction="ascending (lowest first)" if ascending else "descending (highest first)",
        count=len(projected),
        rows=projected,
    )


def plot_metric_vs_time(dataset: Dataset, metric: str) -> MetricChart | ToolError:
    """Pair a numeric metric with the detected date column, oldest first.

    Rows without a date or with a non-numeric metric are skipped.  Dates that
    cannot be parsed sort after all parseable ones.
    """
    import pandas as pd

    col = resolve_column(dataset.headers, metric) or ""
    date_col = detect_date_column(dataset.headers) or "published_at"

    points: list[ChartPoint] = []
    for row in dataset.rows:
        date = row.get(date_col) or row.get("published_at") or row.get("release_date") or ""
        value = parse_number(row.get(col))
        if value is None or not date:
            continue
        name = cell_text(row.get("title") or row.get("name") or "")[:30]
        points.append(ChartPoint(date=cell_text(date), value=value, name=name))

    if not points:
        return ToolError(error=f"No valid data for {col} vs time. Check field names.")

    stamps = pd.to_datetime(
        pd.Series([p.date for p in points]),
        errors="coerce",
        utc=True,
        format="mixed",
    )
    frame = pd.DataFrame({"ts": stamps, "pos": range(len(points))})
    order = frame.sort_values("ts", kind="mergesort", na_position="last")["pos"].tolist()
    return MetricChart(metric_column=col, data=[points[i] for i in order])


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


def enrich_with_engagement(dataset: Dataset) -> Dataset:
    """Append ``engagement = favorites / views`` when both columns exist.

    Returns *dataset* itself when there is nothing to do (no rows, a source
    column is missing, or ``engagement`` is already present), so calling it
    twice is the same as calling it once.
    """
    if dataset.is_empty or ENGAGEMENT_COLUMN in dataset.headers:
        return dataset
    fav_col = detect_favorite_column(dataset.headers)
    view_col = detect_view_column(dataset.headers)
    if not fav_col or not view_col:
        return dataset

    rows = []
    for row in dataset.rows:
        fav = parse_number(row.get(fav_col))
        views = parse_number(row.get(view_col))
        engagement = None
        if fav is not None and views is not None and views > 0 and math.isfinite(fav / views):
            engagement = round(fav / views, 6)
        rows.append({**row, ENGAGEMENT_COLUMN: engagement})
    return Dataset(headers=[*dataset.headers, ENGAGEMENT_COLUMN], rows=rows)


# ---------------------------------------------------------------------------
# Dataset profile
# ---------------------------------------------------------------------------


class ColumnProfile(BaseModel):
    name: str
    role: Literal["numeric", "categorical"]
    count: int = 0
    mean: float | None = None
    min: float | None = None
    max: float | None = None
    unique: int = 0
    top_values: list[tuple[str, int]] = []


def profile_columns(dataset: Dataset, *, numeric_ratio: float = 0.8) -> list[ColumnProfile]:
    """Classify every column as numeric or categorical and summarise it.

    A column is numeric when at least *numeric_ratio* of its non-blank cells
    parse as numbers.  Its mean, min and max cover finite values only and are
    ``None`` when there are none.
    """
    profiles: list[ColumnProfile] = []
    for header, column in dataset.to_frame().items():
        values = _non_blank(column)
        numbers = _numbers(values).dropna()
        ratio = numbers.size / (values.size or 1)

        if numbers.size and ratio >= numeric_ratio:
            finite = _finite(numbers)
            profiles.append(
                ColumnProfile(
                    name=header,
                    role="numeric",
                    count=int(numbers.size),
                    mean=round(float(finite.mean()), 2) if finite.size else None,
                    min=float(finite.min()) if finite.size else None,
                    max=float(finite.max()) if finite.size else None,
                )
            )
            continue

        counts = _ranked_counts(values)
        top = [(str(value), int(count)) for value, count in counts.head(5).items()]
        profiles.append(
            ColumnProfile(name=header, role="categorical", unique=int(counts.size), top_values=top)
        )
    return profiles


def summarize_dataset(dataset: Dataset, *, numeric_ratio: float = 0.8) -> str:
    """Compact text profile of every column, column names always quoted."""
    if dataset.is_empty or not dataset.headers:
        return ""

    profiles = profile_columns(dataset, numeric_ratio=numeric_ratio)
    numeric = [p for p in profiles if p.role == "numeric"]
    categorical = [p for p in profiles if p.role == "categorical"]

    lines = [f"**Dataset: {len(dataset.rows)} rows x {len(dataset.headers)} columns**", ""]
    if numeric:
        lines.append("**Numeric columns** (exact names, use these verbatim in tool calls):")
        for p in numeric:
            lines.append(
                f'  - "{p.name}": mean={_display_number(p.mean)}, '
                f"min={_display_number(p.min)}, max={_display_number(p.max)}, n={p.count}"
            )
    if categorical:
        if numeric:
            lines.append("")
        lines.append("**Categorical columns** (exact names, use these verbatim in tool calls):")
        for p in categorical:
            top = ", ".join(f"{value} ({count})" for value, count in p.top_values)
            lines.append(f'  - "{p.name}": {p.unique} unique values; top: {top}')
    return "\n".join(lines)


def describe_dataset(dataset: Dataset, *, numeric_ratio: float = 0.8) -> DatasetSummary | ToolError:
    summary = summarize_dataset(dataset, numeric_ratio=numeric_ratio)
    if not summary:
        return ToolError(error="No dataset is loaded.")
    return DatasetSummary(rows=len(dataset.rows), columns=len(dataset.headers), summary=summary)


def build_slim_csv(dataset: Dataset) -> str:
    """CSV text restricted to the key analytical columns, in header order."""
    if dataset.is_empty or not dataset.headers:
        return ""
    slim = [h for h in dataset.headers if any(p.search(h) for p in _SLIM_PATTERNS)]
    if not slim:
        return ""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(slim)
    for row in dataset.rows:
        writer.writerow([cell_text(row.get(h)) for h in slim])
    return buf.getvalue().rstrip("\n")


# ---------------------------------------------------------------------------
# Video selection
# ---------------------------------------------------------------------------


def _views(row: dict[str, Any]) -> float:
    return parse_number(row.get("view_count") or row.get("views") or 0) or 0.0


def play_video(dataset: Dataset, selector: str) -> VideoCard | ToolError:
    """Pick a video row by ordinal, view rank or title substring."""
    rows = dataset.rows
    sel = str(selector or "").strip().lower()
    video: dict[str, Any] | None = None
    if rows:
        if sel in ("first", "1"):
            video = rows[0]
        elif sel in ("last", "most recent"):
            video = rows[-1]
        elif sel in ("most viewed", "most views"):
            video = max(rows, key=_views)
        elif sel == "least viewed":
            video = min(rows, key=_views)
        else:
            video = next((r for r in rows if sel in cell_text(r.get("title")).lower()), None)

    url = (video.get("video_url") or video.get("url")) if video else None
    if not video or not url:
        return ToolError(
            error=f'Video not found for "{selector}". Try "first", "most viewed", or a title keyword.'
        )
    return VideoCard(
        title=cell_text(video.get("title")) or "Video",
        thumbnail=cell_text(video.get("thumbnail")),
        url=cell_text(url),
    )
