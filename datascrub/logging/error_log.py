from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""Reject log buffering.

Rows the pipeline padded, truncated or skipped are buffered as ErrorRecord
objects and written as JSON Lines to ``logs/errors-YYYYMMDD-HHMMSS.log``
(UTC) when flushed. The console log only shows the first few occurrences;
this file keeps all of them.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "SCHEMA_PATH",
]

LOGS_DIR = Path("./logs")
SCHEMA_PATH = Path(__file__).parent / "error_log_schema.json"
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush appends JSON Lines.

    - file path is decided on first access
    - no locking: the pipeline is single-threaded
    - ``max_buffered`` bounds memory; the buffer flushes itself when reached
    """
    def __init__(self, logs_dir: Path | None = None, max_buffered: int = 10_000) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR
        self._max_buffered = max_buffered
        self.total = 0

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)
        self.total += 1
        if len(self._records) >= self._max_buffered:
            self.flush()

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, None if nothing was ever recorded."""
        if not self._records:
            return self._file_path
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
