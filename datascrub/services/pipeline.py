from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from functools import partial
from pathlib import Path

from ..ingest.parser import (
    SEPARATOR_NAMES,
    count_quotes,
    dedupe_column_names,
    detect_separator,
    iter_data_rows,
    parse_row,
    quote_cell,
    sanitize_column_name,
)
from ..ingest.reader import (
    DEFAULT_WINDOW_SIZE,
    ByteSource,
    BytesSource,
    FileByteSource,
    LineStream,
    iter_physical_lines,
    iter_text_windows,
)
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import AdvancedOptions, CleaningConfig
from ..models.errors import ProcessingError, SourceReadError
from ..models.header_layout import HeaderLayout, build_header_layout
from ..models.log_entry import LogSeverity, LogSink, LogTranscript
from ..models.processing_result import CleaningResult, CleaningStats, cleaned_file_name_for
from ..sql.ddl import generate_create_table, generate_load_data
from ..transforms.cells import (
    collapse_whitespace,
    fix_email,
    fix_encoding_issues,
    fix_number_format,
    fuzzy_normalize,
    has_html_tags,
    is_phone_column_name,
    looks_like_date,
    looks_like_email,
    looks_like_phone,
    normalize_case,
    normalize_null,
    parse_number,
    remove_html_tags,
    remove_special_chars,
    standardize_date,
    standardize_phone,
)
from .outliers import detect_outliers
from .progress import MonotonicProgress, ProgressSink
from .summary import format_bytes
from .type_inference import SAMPLE_ROWS, detect_column_types

logger = logging.getLogger(__name__)

"""Streaming cleaning pipeline.

One pass over the source: windows are decoded and split into physical lines,
each line is merged into a logical row if needed, parsed, reconciled against
the header width, cleaned cell by cell, filtered, de-duplicated and written
to a bounded row buffer that is flushed as an output chunk every 1000 rows.

``CleaningPipeline.iter_chunks()`` is a generator: every yielded chunk is a
point where the caller regains control (write it to disk, update a UI, stop
iterating). When a long run of rows produces no output (duplicates, empty
rows) an empty chunk is yielded every 5000 source rows so control still
returns to the caller. Nothing else is shared between runs; ``finish()``
returns an explicit CleaningResult.
"""

__all__ = [
    "CleaningPipeline",
    "ProcessingError",
    "SourceReadError",
    "clean_file",
]

FLUSH_ROWS = 1000
PROGRESS_EVERY_ROWS = 5000
MAX_QUOTE_MERGES = 50
MAX_SHAPE_MERGES = 10
VERBOSE_LOG_LIMIT = 5

ICON_FILE = "\U0001f4c2"
ICON_SETTINGS = "\u2699\ufe0f"
ICON_SEARCH = "\U0001f50d"
ICON_CHART = "\U0001f4ca"
ICON_ID = "\U0001f194"
ICON_WARN = "\u26a0\ufe0f"
ICON_OK = "\u2713"
ICON_TRASH = "\U0001f5d1\ufe0f"
ICON_ROBOT = "\U0001f916"
ICON_DONE = "\U0001f389"

CellStep = Callable[[str], str]


def _gated(predicate: Callable[[str], bool], transform: CellStep) -> CellStep:
    def step(value: str) -> str:
        return transform(value) if value and predicate(value) else value
    return step


def _column_steps(options: AdvancedOptions, column_name: str) -> list[CellStep]:
    """Advanced transforms for one column, in application order."""
    steps: list[CellStep] = []
    if options.remove_html_tags:
        steps.append(_gated(has_html_tags, remove_html_tags))
    if options.validate_email:
        steps.append(_gated(looks_like_email, fix_email))
    # 列名で判定: description 等の列には絶対に適用しない
    if options.standardize_phone and is_phone_column_name(column_name):
        steps.append(_gated(looks_like_phone, standardize_phone))
    if options.standardize_date:
        steps.append(_gated(looks_like_date, standardize_date))
    if options.normalize_case:
        steps.append(partial(normalize_case, column_name=column_name))
    if options.remove_special_chars:
        steps.append(remove_special_chars)
    if options.fix_number_formats:
        steps.append(fix_number_format)
    return steps


def _as_source(source: ByteSource | Path | str | bytes) -> ByteSource:
    if isinstance(source, bytes):
        return BytesSource(source)
    if isinstance(source, (str, Path)):
        return FileByteSource(source)
    return source


class CleaningPipeline:
    """Single-use cleaning run over one source.

    Args:
        source: byte source (or a path / raw bytes)
        config: cleaning configuration; defaults to CleaningConfig()
        on_progress: ``(percent, label)`` sink, fed through MonotonicProgress
        on_log: LogEntry sink; entries are also kept in ``self.log``
        error_log: reject log buffer for COLUMN_MISMATCH / MALFORMED_ROW rows
        window_size: read window in bytes
    """

    def __init__(
        self,
        source: ByteSource | Path | str | bytes,
        config: CleaningConfig | None = None,
        *,
        on_progress: ProgressSink | None = None,
        on_log: LogSink | None = None,
        error_log: ErrorLogBuffer | None = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> None:
        self.source = _as_source(source)
        self.config = config or CleaningConfig()
        self.progress = MonotonicProgress(on_progress)
        self.log = LogTranscript(on_log)
        self.error_log = error_log
        self.window_size = window_size

        self.layout: HeaderLayout | None = None
        self.separator = ","
        self.start_time: datetime | None = None
        self._started = False
        self._exhausted = False
        self._column_steps: list[list[CellStep]] = []
        self._data_indices: list[int] = []

        self._seen_exact: set[tuple[str, ...]] = set()
        self._seen_fuzzy: set[tuple[str, ...]] = set()
        self._numeric: dict[int, list[float]] = {}  # RawHeaders index -> values
        self._next_id = 1
        self._bytes_read = 0

        self._sample_chunks: list[str] = []
        self._sample_rows = 0

        self._original = 0
        self._cleaned = 0
        self._fixed = 0
        self._mismatches = 0
        self._exact_dups = 0
        self._fuzzy_dups = 0
        self._malformed = 0

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _add(self, icon: str, message: str, severity: LogSeverity = LogSeverity.PLAIN) -> None:
        self.log.add(icon, message, severity)

    def _reject(self, row: int, error_type: str, message: str) -> None:
        if self.error_log is not None:
            self.error_log.append(ErrorRecord.create(self.source.name, row, error_type, message))

    def _on_read(self, consumed: int, total: int) -> None:
        self._bytes_read = consumed
        pct = min(50.0, consumed / total * 50) if total else 50.0
        self.progress(pct, f"Reading... {format_bytes(consumed)} / {format_bytes(total)}")

    def _keep_sample(self, chunk: str, rows: int) -> None:
        if self._sample_rows < SAMPLE_ROWS or not self._sample_chunks:
            self._sample_chunks.append(chunk)
            self._sample_rows += rows

    def _flush(self, buffer: list[str]) -> str:
        eol = self.config.eol_char
        chunk = eol.join(buffer) + eol
        self._keep_sample(chunk, len(buffer))
        return chunk

    # ------------------------------------------------------------------
    # header
    # ------------------------------------------------------------------
    def _read_header(self, header_line: str | None) -> str:
        cfg = self.config
        if header_line is None:
            self._add(ICON_WARN, "Source is empty", LogSeverity.WARN)
            raw: list[str] = []
        else:
            if header_line.startswith("\ufeff"):
                header_line = header_line[1:]
            self.separator = detect_separator(header_line)
            self._add(ICON_SEARCH, f"Separator: {SEPARATOR_NAMES.get(self.separator, 'Unknown')} detected")
            raw = dedupe_column_names(sanitize_column_name(h) for h in parse_row(header_line, self.separator))
            more = "..." if len(raw) > 5 else ""
            self._add(ICON_CHART, f"Found {len(raw)} columns: {', '.join(raw[:5])}{more}")

        layout = build_header_layout(raw, cfg.generate_id)
        self.layout = layout
        self._data_indices = layout.data_indices()
        if layout.generates_id:
            if layout.source_id_index is None:
                self._add(ICON_ID, 'No ID column found - adding new "id" column as first column')
            else:
                self._add(
                    ICON_ID,
                    f'Existing "id" column found at source index {layout.source_id_index}'
                    " - moving to first position and regenerating IDs",
                )

        if cfg.is_advanced:
            self._column_steps = [_column_steps(cfg.advanced, name) for name in layout.raw_headers]
        else:
            self._column_steps = [[] for _ in layout.raw_headers]

        return ",".join(quote_cell(h, cfg.eol_char) for h in layout.file_headers) + cfg.eol_char

    # ------------------------------------------------------------------
    # rows
    # ------------------------------------------------------------------
    def _reconcile(self, cells: list[str], line: str, lines: LineStream, row_no: int) -> list[str]:
        """Fix a row whose cell count differs from the header width.

        Tries to join up to MAX_SHAPE_MERGES following lines, accepting the
        first join that parses to exactly the header width. Otherwise pads or
        truncates.
        """
        ncols = len(self.layout.raw_headers)
        attempt = line
        for m, following in enumerate(lines.peek(MAX_SHAPE_MERGES), start=1):
            attempt += "\n" + following
            merged = parse_row(attempt, self.separator)
            if len(merged) == ncols:
                lines.skip(m)
                return merged

        self._mismatches += 1
        got = len(cells)
        cells = (cells + [""] * ncols)[:ncols]
        if self._mismatches <= VERBOSE_LOG_LIMIT:
            self._add(
                ICON_WARN,
                f"Column mismatch at row {row_no}: expected {ncols}, got {got}, normalized",
                LogSeverity.WARN,
            )
        self._reject(row_no, "COLUMN_MISMATCH", f"expected {ncols} columns, got {got}; normalized")
        return cells

    def _clean_cells(self, cells: list[str]) -> list[str]:
        cfg = self.config
        fixed = 0
        if cfg.fix_encoding:
            repaired = [fix_encoding_issues(c) for c in cells]
            fixed += sum(1 for a, b in zip(cells, repaired) if a != b)
            cells = repaired
        if cfg.trim_whitespace:
            trimmed = [collapse_whitespace(c) for c in cells]
            fixed += sum(1 for a, b in zip(cells, trimmed) if a != b)
            cells = trimmed
        if cfg.normalize_values:
            stripped = [c.strip() for c in cells]
            normalized = [normalize_null(c) for c in stripped]
            fixed += sum(1 for a, b in zip(stripped, normalized) if a != b)
            cells = normalized

        if cfg.is_advanced:
            record_numbers = cfg.advanced.detect_outliers
            for i in self._data_indices:
                value = cells[i]
                for step in self._column_steps[i]:
                    updated = step(value)
                    if updated != value:
                        fixed += 1
                        value = updated
                cells[i] = value
                if record_numbers and value:
                    number = parse_number(value)
                    if number is not None:
                        self._numeric.setdefault(i, []).append(number)

        self._fixed += fixed
        return cells

    def _process_line(self, line: str, lines: LineStream, row_no: int) -> str | None:
        """Run one logical row through the pipeline; None when the row is dropped."""
        cfg = self.config
        layout = self.layout

        merges = 0
        while count_quotes(line) % 2 == 1 and merges < MAX_QUOTE_MERGES:
            following = next(lines, None)
            if following is None:
                break
            line += "\n" + following
            merges += 1

        cells = parse_row(line, self.separator)
        if len(cells) != len(layout.raw_headers):
            cells = self._reconcile(cells, line, lines, row_no)

        cells = self._clean_cells(cells)

        if cfg.remove_empty and all(not c.strip() for c in cells):
            return None
        if cfg.advanced.remove_rows_with_empty_values and any(not c.strip() for c in cells):
            return None

        values = layout.dedup_values(cells)
        if cfg.remove_duplicates:
            key = tuple(values)
            if key in self._seen_exact:
                self._exact_dups += 1
                return None
            self._seen_exact.add(key)
        if cfg.advanced.fuzzy_duplicates:
            fuzzy_key = tuple(fuzzy_normalize(v) for v in values)
            if fuzzy_key in self._seen_fuzzy:
                self._fuzzy_dups += 1
                if self._fuzzy_dups <= VERBOSE_LOG_LIMIT:
                    self._add(ICON_SEARCH, f"Fuzzy duplicate removed at row {row_no}", LogSeverity.WARN)
                return None
            self._seen_fuzzy.add(fuzzy_key)

        next_id = None
        if layout.generates_id:
            next_id = self._next_id
            self._next_id += 1
        eol = cfg.eol_char
        return ",".join(quote_cell(c, eol) for c in layout.assemble(cells, next_id))

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def iter_chunks(self) -> Iterator[str]:
        """Yield output chunks; chunk 0 is the header line.

        An empty chunk is yielded at a progress checkpoint when nothing was
        flushed since the previous one.

        Raises:
            SourceReadError: the source could not be read (fatal)
            ProcessingError: the pipeline was already run
        """
        if self._started:
            raise ProcessingError("pipeline already run; create a new CleaningPipeline")
        self._started = True
        self.start_time = datetime.now(UTC)
        cfg = self.config
        total = self.source.size

        self._add(ICON_FILE, f"Mode: {cfg.mode.value.upper()} | File: {self.source.name} ({format_bytes(total)})")
        self._add(ICON_SETTINGS, f"EOL: {cfg.eol} | Encoding: {cfg.encoding}")
        for name in cfg.advanced.enabled_reserved():
            logger.debug("option %s is accepted but has no transform", name)

        windows = iter_text_windows(self.source, self.window_size, cfg.encoding, on_progress=self._on_read)
        lines = LineStream(iter_physical_lines(windows))

        header_chunk = self._read_header(next(lines, None))
        self._keep_sample(header_chunk, 0)
        yield header_chunk

        stage = "AI Processing" if cfg.is_advanced else "Processing"
        buffer: list[str] = []
        flushed = False
        for line in lines:
            if not line.strip():
                continue
            self._original += 1
            row_no = self._original
            try:
                row = self._process_line(line, lines, row_no)
            except SourceReadError:
                raise
            except Exception as e:
                self._malformed += 1
                self._add(ICON_WARN, f"Skipped malformed row {row_no}", LogSeverity.WARN)
                self._reject(row_no, "MALFORMED_ROW", f"{type(e).__name__}: {e}")
                row = None

            if row is not None:
                buffer.append(row)
                self._cleaned += 1
                if len(buffer) >= FLUSH_ROWS:
                    yield self._flush(buffer)
                    buffer = []
                    flushed = True

            if row_no % PROGRESS_EVERY_ROWS == 0:
                pct = 50 + (self._bytes_read / total * 30 if total else 30)
                self.progress(pct, f"{stage}... {self._cleaned:,} rows")
                if not flushed:
                    yield ""
                flushed = False

        if buffer:
            yield self._flush(buffer)
        self._log_row_totals()
        self._exhausted = True

    def _log_row_totals(self) -> None:
        if self._fuzzy_dups > VERBOSE_LOG_LIMIT:
            self._add(
                ICON_SEARCH,
                f"... and {self._fuzzy_dups - VERBOSE_LOG_LIMIT} more fuzzy duplicates removed",
                LogSeverity.WARN,
            )
        removed = self._original - self._cleaned
        self._add(ICON_OK, f"Processed: {self._original:,} -> {self._cleaned:,} rows")
        if removed > 0:
            self._add(ICON_TRASH, f"Removed: {removed:,} rows", LogSeverity.WARN)
        if self.config.is_advanced and self._fixed > 0:
            self._add(ICON_ROBOT, f"AI Fixed: {self._fixed:,} cells", LogSeverity.SUCCESS)
        if self._mismatches > 0:
            self._add(
                ICON_WARN,
                f"Column mismatches: {self._mismatches:,} rows had incorrect column counts",
                LogSeverity.WARN,
            )
        if self._malformed > 0:
            self._add(ICON_WARN, f"Skipped malformed rows: {self._malformed:,}", LogSeverity.WARN)

    def stats(self) -> CleaningStats:
        return CleaningStats(
            original=self._original,
            cleaned=self._cleaned,
            removed=self._original - self._cleaned,
            cols=len(self.layout.file_headers) if self.layout else 0,
            fixed=self._fixed,
            column_mismatches=self._mismatches,
            exact_duplicates=self._exact_dups,
            fuzzy_duplicates=self._fuzzy_dups,
            malformed_rows=self._malformed,
        )

    def finish(self, chunks: list[str] | None = None, *, output_name: str | None = None) -> CleaningResult:
        """Type inference, outliers and SQL generation after the row pass.

        ``chunks`` is stored in the result as-is; callers that streamed the
        output elsewhere pass nothing. Type inference uses the first
        SAMPLE_ROWS rows the pipeline kept itself. ``output_name`` is the file
        name the load statement refers to (default ``<stem>_cleaned.csv``).
        """
        if not self._exhausted:
            raise ProcessingError("iter_chunks() must be exhausted before finish()")
        cfg = self.config
        layout = self.layout
        headers = list(layout.file_headers)

        self.progress(85, "Detecting column types...")
        sample = list(iter_data_rows(self._sample_chunks, SAMPLE_ROWS, eol=cfg.eol_char))
        column_types = detect_column_types(headers, sample)
        self._add(ICON_OK, "Column types detected")

        outliers: dict[str, int] = {}
        if cfg.advanced.detect_outliers and self._numeric:
            for found in detect_outliers(self._numeric, layout):
                outliers[found.column] = found.count
                self._add(ICON_CHART, f'Column "{found.column}" has {found.count} potential outliers', LogSeverity.WARN)
            if not outliers:
                self._add(ICON_CHART, "No outliers detected", LogSeverity.SUCCESS)

        cleaned_name = output_name or cleaned_file_name_for(self.source.name)
        create_sql = generate_create_table(cfg.table_name, headers, column_types, cfg.pk_column)
        load_sql = generate_load_data(cfg.table_name, cleaned_name, headers, cfg.eol_char)

        self.progress(100, "Complete!")
        kind = "Advanced AI" if cfg.is_advanced else "Standard"
        self._add(ICON_DONE, f"{kind} cleaning complete!", LogSeverity.SUCCESS)

        return CleaningResult(
            chunks=list(chunks) if chunks is not None else [],
            headers=headers,
            raw_headers=list(layout.raw_headers),
            column_types=column_types,
            stats=self.stats(),
            separator=self.separator,
            source_name=self.source.name,
            create_sql=create_sql,
            load_sql=load_sql,
            outliers=outliers,
            log=list(self.log.entries),
            start_time=self.start_time,
            end_time=datetime.now(UTC),
        )


def clean_file(
    source: ByteSource | Path | str | bytes,
    config: CleaningConfig | None = None,
    *,
    on_progress: ProgressSink | None = None,
    on_log: LogSink | None = None,
    error_log: ErrorLogBuffer | None = None,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> CleaningResult:
    """Run the whole pipeline and keep every chunk in the result.

    The full output is held in memory; use CleaningPipeline.iter_chunks()
    to stream large files instead.
    """
    pipeline = CleaningPipeline(
        source,
        config,
        on_progress=on_progress,
        on_log=on_log,
        error_log=error_log,
        window_size=window_size,
    )
    chunks = [c for c in pipeline.iter_chunks() if c]
    return pipeline.finish(chunks)
