from __future__ import annotations

import codecs
import re
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Protocol

from ..models.errors import SourceReadError

"""Chunked source reading.

The source is read in fixed-size byte windows. Each window is decoded
incrementally (a multi-byte character split across two windows is completed
by the next one) and split into physical lines; the trailing partial line is
carried over and prefixed to the next window. Memory stays at one window plus
the carried text.
"""

__all__ = [
    "DEFAULT_WINDOW_SIZE",
    "ByteSource",
    "BytesSource",
    "FileByteSource",
    "LineStream",
    "SourceReadError",
    "iter_physical_lines",
    "iter_text_windows",
    "split_lines",
]

DEFAULT_WINDOW_SIZE = 1024 * 1024

_LINE_BREAK = re.compile(r"\r?\n|\r")

ReadProgress = Callable[[int, int], None]  # (bytes consumed, total bytes)


class ByteSource(Protocol):
    """Byte-addressable source with a known size."""

    name: str

    @property
    def size(self) -> int: ...

    def read_range(self, offset: int, length: int) -> bytes: ...


class FileByteSource:
    """ByteSource over a local file; each range read opens, seeks and reads."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.name = self.path.name
        try:
            self._size = self.path.stat().st_size
        except OSError as e:
            raise SourceReadError(f"cannot stat {self.path}: {e}") from e

    @property
    def size(self) -> int:
        return self._size

    def read_range(self, offset: int, length: int) -> bytes:
        try:
            with self.path.open("rb") as f:
                f.seek(offset)
                return f.read(length)
        except OSError as e:
            raise SourceReadError(f"failed to read {self.path} at offset {offset}: {e}") from e


class BytesSource:
    """In-memory ByteSource, mostly for tests and already-buffered uploads."""

    def __init__(self, data: bytes | str, name: str = "data.csv") -> None:
        self._data = data.encode("utf-8") if isinstance(data, str) else data
        self.name = name

    @property
    def size(self) -> int:
        return len(self._data)

    def read_range(self, offset: int, length: int) -> bytes:
        return self._data[offset: offset + length]


def iter_text_windows(
    source: ByteSource,
    window_size: int = DEFAULT_WINDOW_SIZE,
    encoding: str = "utf-8",
    on_progress: ReadProgress | None = None,
) -> Iterator[tuple[str, bool]]:
    """Yield ``(decoded_text, is_last)`` for each window, strictly in order.

    Undecodable bytes are replaced (U+FFFD); no transcoding beyond the
    declared codec is attempted.
    """
    if window_size <= 0:
        raise ValueError("window_size must be positive")
    total = source.size
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    offset = 0
    if total == 0:
        yield decoder.decode(b"", final=True), True
        return
    while offset < total:
        data = source.read_range(offset, window_size)
        if not data:
            raise SourceReadError(f"unexpected end of source at offset {offset} of {total}")
        offset += len(data)
        is_last = offset >= total
        text = decoder.decode(data, final=is_last)
        if on_progress is not None:
            on_progress(min(offset, total), total)
        yield text, is_last


def split_lines(text: str) -> list[str]:
    return _LINE_BREAK.split(text)


def iter_physical_lines(windows: Iterable[tuple[str, bool]]) -> Iterator[str]:
    """Reassemble complete physical lines from decoded windows.

    The trailing partial line of a window is held back and joined with the
    start of the next one. A window ending in a bare CR keeps the CR in the
    carried text so a CRLF split across windows is not read as two breaks.
    The final leftover is yielded only when non-empty.
    """
    leftover = ""
    for text, is_last in windows:
        full = leftover + text
        if is_last:
            lines = split_lines(full)
            if lines and lines[-1] == "":
                lines.pop()
            leftover = ""
            yield from lines
            continue
        held_cr = full.endswith("\r")
        if held_cr:
            full = full[:-1]
        lines = split_lines(full)
        leftover = lines.pop() + ("\r" if held_cr else "")
        yield from lines
    if leftover:
        # windows ended without an is_last marker
        yield from (line for line in split_lines(leftover) if line)


class LineStream:
    """Iterator over physical lines with bounded look-ahead.

    The row pipeline peeks at following lines to repair quoted fields that
    span several physical lines, then consumes the ones it merged.
    """

    def __init__(self, lines: Iterable[str]) -> None:
        self._it = iter(lines)
        self._buffer: deque[str] = deque()
        self.consumed = 0

    def __iter__(self) -> LineStream:
        return self

    def __next__(self) -> str:
        line = self._buffer.popleft() if self._buffer else next(self._it)
        self.consumed += 1
        return line

    def peek(self, n: int) -> list[str]:
        """Return up to ``n`` upcoming lines without consuming them."""
        while len(self._buffer) < n:
            try:
                self._buffer.append(next(self._it))
            except StopIteration:
                break
        return list(self._buffer)[:n]

    def skip(self, n: int) -> None:
        for _ in range(n):
            next(self)
