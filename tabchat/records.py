# tabchat/records.py
"""Exchange records: one structured entry per answered question.

Records are handed to a :class:`JsonlRecordStore`, which appends them to a
JSON-lines file so they can be replayed or inspected later.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from .query.results import DispatchOutcome, MetricChart, ToolCallRecord
from .utils.logging import get_logger

_logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExchangeRecord(BaseModel):
    question: str
    answer: str
    charts: list[MetricChart] = Field(default_factory=list)
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    source: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_outcome(
        cls,
        question: str,
        outcome: DispatchOutcome,
        *,
        source: str | None = None,
    ) -> "ExchangeRecord":
        return cls(
            question=question,
            answer=outcome.text,
            charts=list(outcome.charts),
            tool_calls=list(outcome.tool_calls),
            source=source,
        )


class JsonlRecordStore:
    """Append-only JSON-lines file of :class:`ExchangeRecord` entries."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def append(self, record: ExchangeRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(record.model_dump_json() + "\n")
        _logger.debug(f"Appended exchange record to {self.path}")

    def extend(self, records: list[ExchangeRecord]) -> int:
        for record in records:
            self.append(record)
        return len(records)

    def read(self) -> list[ExchangeRecord]:
        if not self.path.exists():
            return []
        out: list[ExchangeRecord] = []
        with self.path.open(encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if line:
                    out.append(ExchangeRecord.model_validate_json(line))
        return out
