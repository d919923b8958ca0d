"""Source loaders: delimited text and JSON records into a :class:`Dataset`."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from ..utils.logging import get_logger

_logger = get_logger(__name__)

Cell = str | float | None


class Dataset(BaseModel):
    """Header list plus rows that all share exactly that key set.

    Rows hold strings as loaded; the derived ``engagement`` column holds a
    float or ``None``.  Instances are never edited in place: enrichment and
    reloads build a new ``Dataset``.
    """

    model_config = ConfigDict(frozen=True)

    headers: list[str] = []
    rows: list[dict[str, Cell]] = []

    @model_validator(mode="after")
    def _check_shape(self) -> "Dataset":
        if len(set(self.headers)) != len(self.headers):
            raise ValueError(f"Duplicate column names: {self.headers}")
        expected = set(self.headers)
        for i, row in enumerate(self.rows):
            if set(row) != expected:
                raise ValueError(
                    f"Row {i} keys {sorted(row)} do not match headers {self.headers}"
                )
        return self

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def column(self, name: str) -> list[Cell]:
        """Values of *name* in row order (``None`` where the column is absent)."""
        return [row.get(name) for row in self.rows]

    def series(self, name: str):
        """Column *name* as an object-dtype pandas Series; cells are not coerced."""
        import pandas as pd

        return pd.Series(self.column(name), dtype=object, name=name)

    def to_frame(self):
        """Return the rows as a pandas DataFrame with columns in header order."""
        import pandas as pd

        return pd.DataFrame({h: self.series(h) for h in self.headers}, columns=self.headers)


class SourceMeta(BaseModel):
    """Metadata about a loaded source."""

    name: str
    format: str
    size: int  # bytes
    rows: int
    columns: int
    preview: str | None = None


def _strip_wrapping_quotes(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def _split_loose(line: str) -> list[str]:
    """Quote-toggling comma split; any other character stays in its field."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def _split_line(line: str) -> list[str]:
    # One record per line; a quote left open at end of line closes there.
    try:
        fields = next(csv.reader([line], skipinitialspace=True), [])
    except csv.Error:
        # stray carriage returns and the like
        fields = _split_loose(line)
    return [_strip_wrapping_quotes(f) for f in fields]


def _unique_headers(raw: list[str]) -> list[str]:
    headers: list[str] = []
    for name in raw:
        candidate = name
        i = 2
        while candidate in headers:
            candidate = f"{name} ({i})"
            i += 1
        headers.append(candidate)
    return headers


def parse_csv_text(text: str) -> Dataset:
    """Parse comma-separated text into a :class:`Dataset`.

    Blank lines are skipped.  With no header line or no data lines the result
    is an empty dataset rather than an error.  Missing trailing fields become
    empty strings and surplus fields are ignored.
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    lines = [line for line in lines if line.strip()]
    if len(lines) < 2:
        return Dataset()

    headers = _unique_headers(_split_line(lines[0]))
    rows: list[dict[str, Cell]] = []
    for line in lines[1:]:
        values = _split_line(line)
        rows.append(
            {h: (values[i] if i < len(values) else "") for i, h in enumerate(headers)}
        )
    _logger.debug(f"Parsed CSV: {len(rows)} rows x {len(headers)} columns")
    return Dataset(headers=headers, rows=rows)


def _record_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def dataset_from_records(records: Any) -> Dataset:
    """Build a dataset from JSON records (a list of objects).

    ``{"videos": [...]}`` as returned by the channel download endpoint is
    accepted as well.  Header order follows first appearance of each key.
    """
    if isinstance(records, dict) and isinstance(records.get("videos"), list):
        records = records["videos"]
    if not isinstance(records, list):
        raise ValueError("JSON source must be a list of objects")

    headers: list[str] = []
    seen: set[str] = set()
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValueError(f"JSON record {i} is not an object")
        for key in record:
            key = str(key)
            if key not in seen:
                seen.add(key)
                headers.append(key)

    rows: list[dict[str, Cell]] = [
        {h: _record_value(record.get(h)) for h in headers} for record in records
    ]
    return Dataset(headers=headers, rows=rows)


def load_source(path: Path | str) -> tuple[SourceMeta, Dataset]:
    """Load a ``.csv`` or ``.json`` file and return (metadata, dataset)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Source not found: {path}")
    suffix = path.suffix.lower()
    size = path.stat().st_size

    if suffix == ".csv":
        dataset = parse_csv_text(path.read_text(encoding="utf-8-sig"))
        fmt = "csv"
    elif suffix == ".json":
        dataset = dataset_from_records(json.loads(path.read_text(encoding="utf-8")))
        fmt = "json"
    else:
        raise ValueError(f"Unsupported source format: {path.suffix or '(none)'} (expected .csv or .json)")

    meta = SourceMeta(
        name=path.name,
        format=fmt,
        size=size,
        rows=len(dataset.rows),
        columns=len(dataset.headers),
        preview=f"{len(dataset.rows)} rows x {len(dataset.headers)} cols: {dataset.headers}"[:200],
    )
    _logger.info(f"Loaded {meta.name}: {meta.rows} rows x {meta.columns} cols")
    return meta, dataset
