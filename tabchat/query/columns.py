"""Cell parsing, column-name resolution and header pattern detection."""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Sequence

# Leading numeric prefix, the way spreadsheet exports are usually read:
# "12", "-3.5", ".5", "1e3", "42 views" -> 42.
_NUMBER_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INFINITY_RE = re.compile(r"^\s*([+-]?)Infinity")
_SEPARATOR_RE = re.compile(r"[\s_-]+")

FAVORITE_PATTERNS = (
    re.compile(r"favorite.?count", re.IGNORECASE),
    re.compile(r"like.?count", re.IGNORECASE),
    re.compile(r"^likes?$", re.IGNORECASE),
)
VIEW_PATTERNS = (
    re.compile(r"view.?count", re.IGNORECASE),
    re.compile(r"^views?$", re.IGNORECASE),
)
TEXT_PATTERNS = (
    re.compile(r"^text$", re.IGNORECASE),
    re.compile(r"text|content|tweet|body", re.IGNORECASE),
)
DATE_PATTERNS = (
    re.compile(r"^published_at$", re.IGNORECASE),
    re.compile(r"release_date|date|published|created.?at|timestamp", re.IGNORECASE),
)
ENGAGEMENT_COLUMN = "engagement"


def parse_number(value: Any) -> float | None:
    """Parse a cell into a float, or ``None`` when it is not numeric.

    Strings are read by their leading numeric prefix, so ``"42 views"`` is 42
    and ``"abc"`` is ``None``.  NaN never comes back as a number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    text = str(value)
    m = _NUMBER_PREFIX_RE.match(text)
    if m:
        return float(m.group(1))
    m = _INFINITY_RE.match(text)
    if m:
        return -math.inf if m.group(1) == "-" else math.inf
    return None


def is_blank(value: Any) -> bool:
    return value is None or value == ""


def cell_text(value: Any) -> str:
    """Render a cell for display or frequency counting."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_column_name(name: str) -> str:
    return _SEPARATOR_RE.sub("", str(name).lower())


def resolve_column(headers: Sequence[str], name: str | None) -> str | None:
    """Map a caller-supplied column name onto an actual header.

    Exact matches win.  Otherwise both sides are lower-cased with runs of
    spaces, underscores and hyphens removed, and the first header whose
    normalised form matches is returned.  When nothing matches the candidate
    comes back unchanged; aggregations then report the missing column.
    """
    if not headers or not name:
        return name
    if name in headers:
        return name
    target = normalize_column_name(name)
    for header in headers:
        if normalize_column_name(header) == target:
            return header
    return name


def find_header(headers: Iterable[str], patterns: Sequence[re.Pattern[str]]) -> str | None:
    """Return the first header matching the earliest pattern in *patterns*."""
    headers = list(headers)
    for pattern in patterns:
        for header in headers:
            if pattern.search(header):
                return header
    return None


def detect_favorite_column(headers: Iterable[str]) -> str | None:
    return find_header(headers, FAVORITE_PATTERNS)


def detect_view_column(headers: Iterable[str]) -> str | None:
    return find_header(headers, VIEW_PATTERNS)


def detect_text_column(headers: Iterable[str]) -> str | None:
    return find_header(headers, TEXT_PATTERNS)


def detect_date_column(headers: Iterable[str]) -> str | None:
    return find_header(headers, DATE_PATTERNS)
