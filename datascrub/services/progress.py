from __future__ import annotations

import sys
from collections.abc import Callable
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress reporting for cleaning runs.

The pipeline reports ``(percent, label)`` pairs: 0-50 while reading, 50-80
while processing rows, 85 during type detection and 100 when done. Reading
and row processing interleave, so raw read percentages can trail processing
percentages; MonotonicProgress clamps them.

ProgressTracker is the terminal sink: a single tqdm bar, only on a TTY (no
ANSI control sequence spam in CI or when output is piped).
"""

__all__ = [
    "ProgressSink",
    "MonotonicProgress",
    "ProgressTracker",
    "is_tty_enabled",
]

ProgressSink = Callable[[float, str], None]


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class MonotonicProgress:
    """Wraps a sink so that percent never decreases and stays within 0-100."""

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self._sink = sink
        self.percent = 0.0
        self.label = ""

    def __call__(self, percent: float, label: str) -> None:
        clamped = min(100.0, max(self.percent, float(percent)))
        self.percent = clamped
        self.label = label
        if self._sink is not None:
            self._sink(clamped, label)


class ProgressTracker:
    """Percent progress bar using tqdm.

    Usable directly as a progress sink. In non-TTY environments the bar is
    not created and every call is a no-op.
    """

    def __init__(self, *, description: str = "Cleaning") -> None:
        self.description = description
        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=100,
                desc=description,
                unit="%",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
                bar_format="{desc}: {percentage:3.0f}%|{bar}| {postfix}",
            )
        else:
            self.pbar = None

    def __call__(self, percent: float, label: str) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.n = round(percent, 1)
            self.pbar.set_postfix_str(label, refresh=False)
            self.pbar.refresh()

    def close(self) -> None:
        """Close the progress bar."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
