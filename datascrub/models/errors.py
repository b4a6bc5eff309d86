from __future__ import annotations

"""Exceptions that abort a cleaning run.

Per-row problems never raise out of the pipeline; only these do.
"""

__all__ = [
    "ProcessingError",
    "SourceReadError",
]


class ProcessingError(Exception):
    """Base exception for processing errors."""
    pass


class SourceReadError(ProcessingError):
    """Raised when the source cannot be read. Fatal for the run; no partial result."""
