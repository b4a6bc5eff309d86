from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .log_entry import LogEntry

"""Result models for a cleaning run.

CleaningResult replaces any process-wide "last result" store: the pipeline
returns it and the caller hands it to whatever export step it runs.
"""

__all__ = [
    "CleaningStats",
    "CleaningResult",
    "cleaned_file_name_for",
]

ColumnTypes = dict[str, str]


def cleaned_file_name_for(source_name: str) -> str:
    """``orders.csv`` -> ``orders_cleaned.csv``."""
    stem = source_name.rsplit(".", 1)[0] if "." in source_name else source_name
    return f"{stem or 'data'}_cleaned.csv"


@dataclass(frozen=True)
class CleaningStats:
    """Row and cell counters, finalized once at the end of a run."""
    original: int  # non-blank source rows seen
    cleaned: int  # rows written to the output
    removed: int  # original - cleaned
    cols: int  # output column count
    fixed: int  # cells changed by a transform
    column_mismatches: int = 0  # rows padded/truncated after re-merge failed
    exact_duplicates: int = 0
    fuzzy_duplicates: int = 0
    malformed_rows: int = 0  # rows skipped on unexpected errors


@dataclass(frozen=True)
class CleaningResult:
    """Everything a result consumer needs after a run."""
    chunks: list[str]  # chunk 0 = header line
    headers: list[str]  # FileHeaders
    raw_headers: list[str]
    column_types: ColumnTypes
    stats: CleaningStats
    separator: str
    source_name: str
    create_sql: str = ""
    load_sql: str = ""
    outliers: dict[str, int] = field(default_factory=dict)
    log: list[LogEntry] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def cleaned_file_name(self) -> str:
        return cleaned_file_name_for(self.source_name)

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def throughput_rows_per_sec(self) -> float:
        elapsed = self.elapsed_seconds
        return self.stats.original / elapsed if elapsed > 0 else 0.0

    def text(self) -> str:
        """Concatenated cleaned file. Loads the whole output; for small inputs and tests."""
        return "".join(self.chunks)
