from __future__ import annotations

from ..models.processing_result import CleaningResult

"""Summary line rendering.

Format:
SUMMARY rows={original}/{cleaned} removed={n} cols={n} fixed={n}
mismatches={n} skipped={n} elapsed_sec={s} throughput_rps={r}
"""

__all__ = [
    "format_bytes",
    "render_summary_line",
]

_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(n: int) -> str:
    """Human readable size, e.g. ``1.5 MB``. Whole bytes are printed without decimals."""
    size = float(n)
    for unit in _UNITS:
        if size < 1024 or unit == _UNITS[-1]:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.1f} {unit}"
        size /= 1024
    raise AssertionError("unreachable")  # pragma: no cover


def _format_number(value: float) -> str:
    # 指数表記を避ける
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: CleaningResult) -> str:
    """Render a SUMMARY line from a CleaningResult.

    Examples:
        >>> from datetime import datetime, UTC
        >>> from datascrub.models import CleaningStats
        >>> stats = CleaningStats(original=10, cleaned=8, removed=2, cols=3, fixed=4)
        >>> result = CleaningResult(
        ...     chunks=[], headers=["a", "b", "c"], raw_headers=["a", "b", "c"],
        ...     column_types={}, stats=stats, separator=",", source_name="x.csv",
        ...     start_time=datetime(2024, 1, 1, tzinfo=UTC),
        ...     end_time=datetime(2024, 1, 1, 0, 0, 2, tzinfo=UTC),
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=10/8 removed=2 cols=3 fixed=4 mismatches=0 skipped=0 elapsed_sec=2 throughput_rps=5'
    """
    s = result.stats
    return (
        f"SUMMARY rows={s.original}/{s.cleaned} "
        f"removed={s.removed} "
        f"cols={s.cols} "
        f"fixed={s.fixed} "
        f"mismatches={s.column_mismatches} "
        f"skipped={s.malformed_rows} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_rps={_format_number(result.throughput_rows_per_sec)}"
    )
