from __future__ import annotations

import pytest

from datascrub.models.header_layout import build_header_layout


def test_identity_layout_without_id_generation():
    layout = build_header_layout(["id", "name", "age"], generate_id=False)
    assert layout.file_headers == ("id", "name", "age")
    assert layout.source_id_index is None
    assert [layout.output_index(i) for i in range(3)] == [0, 1, 2]
    assert layout.assemble(["7", "a", "1"]) == ["7", "a", "1"]
    assert layout.dedup_values(["7", "a", "1"]) == ["7", "a", "1"]


def test_generated_id_prepended_when_source_has_none():
    layout = build_header_layout(["name", "age"], generate_id=True)
    assert layout.file_headers == ("id", "name", "age")
    assert layout.source_id_index is None
    assert [layout.output_index(i) for i in range(2)] == [1, 2]
    assert layout.assemble(["a", "1"], next_id=5) == ["5", "a", "1"]


def test_source_id_dropped_and_columns_shift():
    layout = build_header_layout(["name", "ID", "age"], generate_id=True)
    assert layout.file_headers == ("id", "name", "age")
    assert layout.source_id_index == 1
    assert layout.output_index(0) == 1
    assert layout.output_index(1) is None
    assert layout.output_index(2) == 2
    assert not layout.is_data_column(1)
    assert layout.data_indices() == [0, 2]
    assert layout.raw_name(2) == "age"
    assert layout.dedup_values(["a", "99", "1"]) == ["a", "1"]
    assert layout.assemble(["a", "99", "1"], next_id=1) == ["1", "a", "1"]


def test_assemble_pads_short_rows():
    layout = build_header_layout(["a", "b", "c"], generate_id=True)
    assert layout.assemble(["x"], next_id=1) == ["1", "x", "", ""]


def test_assemble_requires_id_when_generating():
    layout = build_header_layout(["a"], generate_id=True)
    with pytest.raises(ValueError):
        layout.assemble(["x"])
