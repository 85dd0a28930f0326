"""
Run Log — the ordered, append-only audit trail of one run.

Lines are immutable once appended.  The orchestrator is the only
writer; readers get tuples, never the underlying list.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field

LineType = Literal["command", "output", "error", "success", "info", "step", "variable"]


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class LogLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: LineType
    content: str
    timestamp: str = Field(default_factory=_now_iso)


class RunLog:
    """Append-only sequence of typed log lines."""

    def __init__(self) -> None:
        self._lines: list[LogLine] = []

    def append(self, line_type: LineType, content: str) -> LogLine:
        line = LogLine(type=line_type, content=content)
        self._lines.append(line)
        return line

    @property
    def lines(self) -> tuple[LogLine, ...]:
        return tuple(self._lines)

    def of_type(self, line_type: LineType) -> list[LogLine]:
        return [line for line in self._lines if line.type == line_type]

    def contents(self) -> list[str]:
        return [line.content for line in self._lines]

    def to_list(self) -> list[dict]:
        return [line.model_dump(mode="json") for line in self._lines]

    def __iter__(self) -> Iterator[LogLine]:
        return iter(tuple(self._lines))

    def __len__(self) -> int:
        return len(self._lines)
