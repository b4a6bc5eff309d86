from __future__ import annotations

import re
from collections.abc import Sequence

from ..transforms.cells import looks_like_date, looks_like_email

"""Column type inference over a bounded sample of cleaned rows.

Each column gets one tag: tinyint / smallint / int / bigint, decimal_money /
decimal, bool, date, email, or a text size tier (varchar, varchar_long, text,
longtext). The tags are mapped to SQL types in datascrub.sql.ddl.
"""

__all__ = [
    "SAMPLE_ROWS",
    "detect_column_types",
    "infer_column_type",
]

SAMPLE_ROWS = 500
MAJORITY = 0.7

_NULL_LIKE = re.compile(r"^(null|n/a|na|none|undefined|nil|\?|-)$", re.IGNORECASE)
_INTEGER = re.compile(r"^-?\d+$")
_DECIMAL = re.compile(r"^-?\d*\.?\d+([eE][+-]?\d+)?$")
_BOOLEAN = re.compile(r"^(true|false|yes|no|0|1|t|f|y|n)$", re.IGNORECASE)

_INT_TIERS = (
    (128, "tinyint"),
    (32768, "smallint"),
    (2**31, "int"),
)


def _integer_tag(values: Sequence[str]) -> str:
    max_abs = max(abs(int(v)) for v in values)
    for limit, tag in _INT_TIERS:
        if max_abs < limit:
            return tag
    return "bigint"


def _fraction_digits(value: str) -> int:
    mantissa = re.split(r"[eE]", value, maxsplit=1)[0]
    return len(mantissa.split(".", 1)[1]) if "." in mantissa else 0


def infer_column_type(values: Sequence[str]) -> str:
    """Infer the tag for one column from its sampled values."""
    present = [v for v in (str(v or "").strip() for v in values) if v and not _NULL_LIKE.match(v)]
    if not present:
        return "varchar"

    if all(_INTEGER.match(v) for v in present):
        return _integer_tag(present)
    if all(_DECIMAL.match(v) for v in present):
        return "decimal_money" if max(_fraction_digits(v) for v in present) <= 2 else "decimal"
    if all(_BOOLEAN.match(v) for v in present):
        return "bool"

    n = len(present)
    if sum(1 for v in present if looks_like_date(v)) >= n * MAJORITY:
        return "date"
    if sum(1 for v in present if looks_like_email(v)) >= n * MAJORITY:
        return "email"

    max_len = max(len(v) for v in present)
    if max_len > 5000:
        return "longtext"
    if max_len > 500:
        return "text"
    if max_len > 255:
        return "varchar_long"
    return "varchar"


def detect_column_types(headers: Sequence[str], sample_rows: Sequence[Sequence[str]]) -> dict[str, str]:
    """Map every header to its inferred tag; rows shorter than the header count read as empty."""
    types: dict[str, str] = {}
    for col, header in enumerate(headers):
        column = [row[col] if col < len(row) else "" for row in sample_rows]
        types[header] = infer_column_type(column)
    return types
