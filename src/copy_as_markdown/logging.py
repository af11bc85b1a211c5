from __future__ import annotations

import csv
import json
import time
from dataclasses import asdict, dataclass, field
from io import StringIO
from pathlib import Path
from typing import Any

from .utils import atomic_write


@dataclass(slots=True)
class HistoryEntry:
    id: str
    url: str
    title: str
    timestamp: float
    profile_used: str
    size_bytes: int
    duration_ms: float
    success: bool
    error_code: str | None = None
    error_message: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class HistoryLogger:
    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file

    @property
    def path(self) -> Path:
        return self._log_file

    def append(self, entry: HistoryEntry) -> None:
        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._log_file.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    def read(self, limit: int = 0) -> list[HistoryEntry]:
        if not self._log_file.exists():
            return []
        entries: list[HistoryEntry] = []
        with self._log_file.open("r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue
                entries.append(HistoryEntry(**json.loads(line)))
        return entries[-limit:] if limit > 0 else entries


@dataclass(slots=True)
class BatchSummary:
    timestamp: float = field(default_factory=time.time)
    total: int = 0
    successes: int = 0
    failures: int = 0
    warnings: dict[str, int] = field(default_factory=dict)

    def add_warnings(self, warnings: list[str] | tuple[str, ...]) -> None:
        for warning in warnings:
            code = warning.split(":", 1)[0]
            self.warnings[code] = self.warnings.get(code, 0) + 1

    def as_row(self, batch_id: str) -> list[str]:
        warning_json = json.dumps(self.warnings, sort_keys=True)
        return [
            batch_id,
            time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.timestamp)),
            str(self.total),
            str(self.successes),
            str(self.failures),
            warning_json,
        ]


SUMMARY_HEADER = ["batch_id", "timestamp", "total", "successes", "failures", "warnings"]


def write_summary_csv(path: Path, header: list[str], rows: list[list[str]]) -> None:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    atomic_write(path, buffer.getvalue())


def append_summary_row(path: Path, summary: BatchSummary, batch_id: str) -> None:
    header = SUMMARY_HEADER
    rows: list[list[str]] = []
    if path.exists():
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = list(csv.reader(handle))
        if reader:
            header, rows = reader[0], reader[1:]
    rows.append(summary.as_row(batch_id))
    write_summary_csv(path, header, rows)


__all__ = [
    "BatchSummary",
    "HistoryEntry",
    "HistoryLogger",
    "SUMMARY_HEADER",
    "append_summary_row",
    "write_summary_csv",
]
