from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from ..models.header_layout import HeaderLayout

"""IQR outlier detection over numeric values collected during the row pass.

Samples are keyed by RawHeaders index. Column names are always resolved
through the layout's raw headers, never through output positions.
"""

__all__ = [
    "MIN_SAMPLES",
    "ColumnOutliers",
    "count_iqr_outliers",
    "detect_outliers",
]

MIN_SAMPLES = 10
IQR_FACTOR = 1.5


@dataclass(frozen=True)
class ColumnOutliers:
    raw_index: int
    column: str
    count: int
    lower_bound: float
    upper_bound: float


def _bounds(sorted_values: np.ndarray) -> tuple[float, float]:
    # 補間なしのインデックス方式 (floor(n * p))
    n = len(sorted_values)
    q1 = float(sorted_values[int(n * 0.25)])
    q3 = float(sorted_values[int(n * 0.75)])
    iqr = q3 - q1
    return q1 - IQR_FACTOR * iqr, q3 + IQR_FACTOR * iqr


def count_iqr_outliers(values: Sequence[float]) -> tuple[int, float, float]:
    """Return ``(count, lower, upper)`` for one column's values."""
    arr = np.asarray(values, dtype=float)
    lower, upper = _bounds(np.sort(arr))
    count = int(np.count_nonzero((arr < lower) | (arr > upper)))
    return count, lower, upper


def detect_outliers(samples: Mapping[int, Sequence[float]], layout: HeaderLayout) -> list[ColumnOutliers]:
    """Columns with at least MIN_SAMPLES values and one or more outliers, in raw column order."""
    found: list[ColumnOutliers] = []
    for raw_index in sorted(samples):
        values = samples[raw_index]
        if len(values) < MIN_SAMPLES:
            continue
        count, lower, upper = count_iqr_outliers(values)
        if count:
            found.append(
                ColumnOutliers(
                    raw_index=raw_index,
                    column=layout.raw_name(raw_index),
                    count=count,
                    lower_bound=lower,
                    upper_bound=upper,
                )
            )
    return found
