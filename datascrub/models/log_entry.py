from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

"""Log events emitted by the cleaning pipeline.

The pipeline never writes to a logger directly for user-facing messages; it
hands LogEntry objects to a sink supplied by the caller.
"""

__all__ = [
    "LogSeverity",
    "LogEntry",
    "LogSink",
    "LogTranscript",
]


class LogSeverity(Enum):
    PLAIN = ""
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    icon: str  # short symbol shown before the message
    message: str
    severity: LogSeverity = LogSeverity.PLAIN

    def render(self) -> str:
        return f"{self.icon} {self.message}"


LogSink = Callable[[LogEntry], None]


class LogTranscript:
    """Collects log entries and forwards them to an optional downstream sink."""

    def __init__(self, downstream: LogSink | None = None) -> None:
        self.entries: list[LogEntry] = []
        self._downstream = downstream

    def __call__(self, entry: LogEntry) -> None:
        self.entries.append(entry)
        if self._downstream is not None:
            self._downstream(entry)

    def add(self, icon: str, message: str, severity: LogSeverity = LogSeverity.PLAIN) -> None:
        self(LogEntry(icon, message, severity))

    def warnings(self) -> list[LogEntry]:
        return [e for e in self.entries if e.severity is LogSeverity.WARN]

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self.entries)
