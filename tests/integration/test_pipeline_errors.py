from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from datascrub.config.loader import default_config
from datascrub.ingest import parser as row_parser
from datascrub.ingest.reader import BytesSource
from datascrub.logging.error_log import ErrorLogBuffer
from datascrub.models.config_models import AdvancedOptions, CleaningConfig, CleaningMode
from datascrub.models.errors import ProcessingError, SourceReadError
from datascrub.services.pipeline import CleaningPipeline, clean_file

"""Row-level failures go to the reject log; source failures abort the run."""


def _records(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class FailingSource(BytesSource):
    """Serves the first window, then fails like a vanished file."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data, name="flaky.csv")
        self.calls = 0

    def read_range(self, offset: int, length: int) -> bytes:
        self.calls += 1
        if self.calls > 1:
            raise SourceReadError(f"device went away at offset {offset}")
        return super().read_range(offset, length)


def _explode_on_boom(line: str, sep: str) -> list[str]:
    if line.startswith("boom"):
        raise ValueError("cannot tokenize")
    return row_parser.parse_row(line, sep)


def test_column_mismatch_written_to_reject_log(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    result = clean_file(BytesSource(b"a,b,c\n1,2\n3,4,5\n", name="orders.csv"), error_log=buf)
    assert result.text() == "a,b,c\n1,2,\n3,4,5\n"
    assert buf.total == 1

    recs = _records(buf.flush())
    assert len(recs) == 1
    rec = recs[0]
    assert rec["file"] == "orders.csv"
    assert rec["row"] == 1
    assert rec["error_type"] == "COLUMN_MISMATCH"
    assert rec["message"] == "expected 3 columns, got 2; normalized"
    assert rec["timestamp"].endswith("Z")


def test_malformed_row_skipped_and_run_continues(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    data = b"k,v\nok,1\nboom,2\nfine,3\n"
    with patch("datascrub.services.pipeline.parse_row", side_effect=_explode_on_boom):
        result = clean_file(data, error_log=buf)

    assert result.text() == "k,v\nok,1\nfine,3\n"
    assert result.stats.malformed_rows == 1
    assert result.stats.original == 3
    assert result.stats.cleaned == 2
    messages = [e.message for e in result.log]
    assert "Skipped malformed row 2" in messages
    assert "Skipped malformed rows: 1" in messages

    rec = _records(buf.flush())[0]
    assert rec["error_type"] == "MALFORMED_ROW"
    assert rec["row"] == 2
    assert rec["message"] == "ValueError: cannot tokenize"


def test_source_read_failure_is_fatal():
    source = FailingSource(b"a,b\n1,2\n3,4\n")
    with pytest.raises(SourceReadError, match="device went away"):
        clean_file(source, window_size=4)


def test_source_read_failure_not_counted_as_malformed():
    pipeline = CleaningPipeline(FailingSource(b"a,b\n1,2\n3,4\n"), window_size=6)
    with pytest.raises(SourceReadError):
        list(pipeline.iter_chunks())
    assert pipeline.stats().malformed_rows == 0


def test_missing_file_raises_source_read_error(tmp_path: Path):
    with pytest.raises(SourceReadError, match="cannot stat"):
        CleaningPipeline(tmp_path / "nope.csv")


def test_pipeline_is_single_use():
    pipeline = CleaningPipeline(b"a\n1\n")
    list(pipeline.iter_chunks())
    pipeline.finish()
    with pytest.raises(ProcessingError, match="already run"):
        list(pipeline.iter_chunks())


def test_finish_requires_exhausted_iteration():
    pipeline = CleaningPipeline(b"a\n1\n")
    chunks = pipeline.iter_chunks()
    next(chunks)
    with pytest.raises(ProcessingError, match="exhausted"):
        pipeline.finish()


def test_reserved_options_change_nothing(dirty_csv_text: str):
    data = dirty_csv_text.encode("utf-8")
    reserved = CleaningConfig(
        mode=CleaningMode.ADVANCED,
        advanced=AdvancedOptions(cross_field_validation=True, fill_missing=True, standardize_address=True),
    )
    with_flags = clean_file(data, reserved)
    plain = clean_file(data)
    assert with_flags.text() == plain.text()
    assert with_flags.stats.fixed == plain.stats.fixed


def test_standard_mode_ignores_advanced_section():
    cfg = default_config(mode="standard", advanced={"validate_email": True, "normalize_case": True})
    assert not cfg.advanced.any_enabled
    result = clean_file(b"name,email\njohn doe,JOHN@GMIAL.COM\n", cfg)
    assert result.text() == "name,email\njohn doe,JOHN@GMIAL.COM\n"
    assert not any(e.message.startswith("AI Fixed") for e in result.log)


def test_error_log_untouched_on_clean_input(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    clean_file(b"a,b\n1,2\n", error_log=buf)
    assert buf.total == 0
    assert buf.flush() is None
    assert list(tmp_path.iterdir()) == []
