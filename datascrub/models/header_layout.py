from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

"""Raw vs output column layout.

RawHeaders are the sanitized source columns; FileHeaders are the columns
written to the output. When identity generation is on, FileHeaders is
``["id", *raw headers without a source "id" column]`` and the source id slot
is dropped from every row. All lookups between the two sides go through
``HeaderLayout.output_index``.
"""

__all__ = [
    "ID_COLUMN",
    "HeaderLayout",
    "build_header_layout",
]

ID_COLUMN = "id"


@dataclass(frozen=True)
class HeaderLayout:
    raw_headers: tuple[str, ...]
    file_headers: tuple[str, ...]
    source_id_index: int | None  # None = absent (or identity generation off)
    generates_id: bool
    _output_map: tuple[int | None, ...]

    def output_index(self, raw_index: int) -> int | None:
        """Position of a raw column in the output row, None when it is dropped."""
        return self._output_map[raw_index]

    def is_data_column(self, raw_index: int) -> bool:
        return self._output_map[raw_index] is not None

    def data_indices(self) -> list[int]:
        return [i for i in range(len(self._output_map)) if self.is_data_column(i)]

    def raw_name(self, raw_index: int) -> str:
        return self.raw_headers[raw_index]

    def dedup_values(self, raw_cells: Sequence[str]) -> list[str]:
        """Cells that take part in duplicate detection (source id excluded)."""
        return [raw_cells[i] for i, out in enumerate(self._output_map) if out is not None]

    def assemble(self, raw_cells: Sequence[str], next_id: int | None = None) -> list[str]:
        """Build an output row aligned with file_headers.

        ``next_id`` is required when the layout generates ids. The result is
        padded or truncated to ``len(file_headers)``.
        """
        out = [""] * len(self.file_headers)
        if self.generates_id:
            if next_id is None:
                raise ValueError("next_id is required when generating ids")
            out[0] = str(next_id)
        for i, cell in enumerate(raw_cells[: len(self._output_map)]):
            pos = self._output_map[i]
            if pos is not None:
                out[pos] = cell
        return out


def build_header_layout(raw_headers: Sequence[str], generate_id: bool) -> HeaderLayout:
    """Build the layout once per run from the sanitized source headers."""
    raw = tuple(raw_headers)
    if not generate_id:
        return HeaderLayout(
            raw_headers=raw,
            file_headers=raw,
            source_id_index=None,
            generates_id=False,
            _output_map=tuple(range(len(raw))),
        )

    source_id_index = next((i for i, h in enumerate(raw) if h.lower() == ID_COLUMN), None)
    output_map: list[int | None] = []
    pos = 1  # 0 は生成 id
    for i in range(len(raw)):
        if i == source_id_index:
            output_map.append(None)
        else:
            output_map.append(pos)
            pos += 1
    file_headers = (ID_COLUMN,) + tuple(h for i, h in enumerate(raw) if i != source_id_index)
    return HeaderLayout(
        raw_headers=raw,
        file_headers=file_headers,
        source_id_index=source_id_index,
        generates_id=True,
        _output_map=tuple(output_map),
    )
