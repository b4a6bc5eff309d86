from __future__ import annotations

import random
import re
import string
from collections.abc import Iterable, Iterator
from itertools import islice

"""Row-level CSV parsing helpers.

- parse_row: quote-aware tokenizer for one logical line
- detect_separator: delimiter guess from the header line
- sanitize_column_name / dedupe_column_names: safe, unique identifiers
- quote_cell: serialization counterpart of parse_row
- iter_data_rows: re-read produced output chunks as rows
"""

__all__ = [
    "SEPARATOR_NAMES",
    "count_quotes",
    "dedupe_column_names",
    "detect_separator",
    "iter_data_rows",
    "parse_row",
    "quote_cell",
    "sanitize_column_name",
]

# 優先順位 = 定義順 (同数時)
SEPARATOR_NAMES = {
    ",": "Comma",
    "\t": "Tab",
    ";": "Semicolon",
    "|": "Pipe",
}

_NON_IDENT = re.compile(r"[^A-Za-z0-9_]")
_MULTI_UNDERSCORE = re.compile(r"_+")


def detect_separator(header_line: str) -> str:
    """Return the candidate delimiter occurring most often in the header line.

    Ties go to the earlier candidate (comma, tab, semicolon, pipe); a line
    with none of them yields comma.
    """
    best = ","
    best_count = 0
    for sep in SEPARATOR_NAMES:
        n = header_line.count(sep)
        if n > best_count:
            best, best_count = sep, n
    return best


def _finish_cell(cell: list[str]) -> str:
    trimmed = "".join(cell).strip()
    if len(trimmed) >= 2 and trimmed.startswith('"') and trimmed.endswith('"'):
        trimmed = trimmed[1:-1]
    return trimmed


def parse_row(line: str, sep: str) -> list[str]:
    """Split one logical line into cells.

    Two states, unquoted and quoted. Inside quotes a doubled quote is a
    literal quote and the separator is ordinary text. Cells are trimmed and a
    remaining pair of wrapping quotes is removed.
    """
    cells: list[str] = []
    cell: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and line[i + 1] == '"':
                    cell.append('"')
                    i += 2
                    continue
                in_quotes = False
            else:
                cell.append(ch)
        elif ch == '"':
            in_quotes = True
        elif ch == sep:
            cells.append(_finish_cell(cell))
            cell = []
        else:
            cell.append(ch)
        i += 1
    cells.append(_finish_cell(cell))
    return cells


def count_quotes(text: str) -> int:
    return text.count('"')


def quote_cell(value: str | None, eol: str | None = None) -> str:
    """Quote a cell for output; ``eol`` is the row terminator in use."""
    if value is None:
        return ""
    s = str(value)
    if "," in s or '"' in s or "\n" in s or "\r" in s or (eol and eol in s):
        return '"' + s.replace('"', '""') + '"'
    return s


def _placeholder_name() -> str:
    return "col_" + "".join(random.choices(string.ascii_lowercase + string.digits, k=5))


def sanitize_column_name(name: str) -> str:
    """Normalize header text into a lower-case ``[a-z0-9_]`` identifier."""
    s = str(name or "").strip().lstrip("\ufeff").strip()
    s = _NON_IDENT.sub("_", s)
    s = _MULTI_UNDERSCORE.sub("_", s).strip("_").lower()
    return s or _placeholder_name()


def dedupe_column_names(names: Iterable[str]) -> list[str]:
    """Append _1, _2, ... to repeated names, in first-seen order."""
    seen: dict[str, int] = {}
    out: list[str] = []
    for name in names:
        if name in seen:
            seen[name] += 1
            out.append(f"{name}_{seen[name]}")
        else:
            seen[name] = 0
            out.append(name)
    return out


def iter_data_rows(chunks: Iterable[str], max_rows: int | None = None, eol: str = "\n") -> Iterator[list[str]]:
    """Yield parsed rows from produced output chunks, skipping the header chunk.

    Output is always comma-delimited. Lines with an odd quote count are joined
    with the following ones until balanced, so quoted cells containing the
    line terminator come back as a single row.
    """
    emitted = 0
    pending: str | None = None
    for chunk in islice(chunks, 1, None):
        for line in chunk.split(eol):
            if pending is not None:
                line = pending + eol + line
                pending = None
            elif not line:
                continue
            if count_quotes(line) % 2 == 1:
                pending = line
                continue
            yield parse_row(line, ",")
            emitted += 1
            if max_rows is not None and emitted >= max_rows:
                return
    if pending:
        yield parse_row(pending, ",")
