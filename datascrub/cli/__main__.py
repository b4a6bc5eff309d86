from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

from datascrub.config.loader import ConfigError, default_config, load_config
from datascrub.ingest.reader import FileByteSource
from datascrub.logging.error_log import ErrorLogBuffer
from datascrub.logging.init import log_summary, logger_log_sink, setup_logging
from datascrub.models.config_models import CleaningConfig
from datascrub.models.processing_result import cleaned_file_name_for
from datascrub.services.pipeline import CleaningPipeline, ProcessingError
from datascrub.services.progress import ProgressTracker
from datascrub.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, then the YAML config (--config, DATASCRUB_CONFIG,
  config/datascrub.yml, or built-in defaults)
- Stream the cleaned chunks of INPUT to <stem>_cleaned.csv
- Write the CREATE TABLE / LOAD DATA statements to <stem>_import.sql
- Flush the reject log, print the SUMMARY line

Exit codes: 0 success, 2 finished with skipped malformed rows, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

CONFIG_ENV_VAR = "DATASCRUB_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/datascrub.yml")
INSPECT_ROWS = 5


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (override=True: .env wins over the process env)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="datascrub", description="Streaming CSV cleaner and MySQL schema generator")
    p.add_argument("input", help="Delimited text file to clean")
    p.add_argument(
        "--config",
        help=f"YAML config file (default: ${CONFIG_ENV_VAR}, else {DEFAULT_CONFIG_PATH} if present, else built-in defaults)",
    )
    p.add_argument("--output", help="Cleaned CSV path (default: <input stem>_cleaned.csv)")
    p.add_argument("--sql", help="SQL script path (default: <input stem>_import.sql)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print the header and first rows then exit")
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> CleaningConfig:
    config_path = args.config or os.getenv(CONFIG_ENV_VAR)
    if config_path:
        return load_config(Path(config_path))
    # 明示指定が無ければ既定パスのファイルを使う (無ければ組み込み既定値)
    if DEFAULT_CONFIG_PATH.is_file():
        return load_config(DEFAULT_CONFIG_PATH)
    return default_config()


def _inspect_data(path: Path, cfg: CleaningConfig) -> int:
    logger = logging.getLogger("datascrub")
    try:
        # sep=None: python エンジンで区切り文字を推定
        df = pd.read_csv(
            path,
            sep=None,
            engine="python",
            nrows=INSPECT_ROWS,
            dtype=str,
            keep_default_na=False,
            encoding=cfg.encoding,
            encoding_errors="replace",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError, OSError) as e:
        logger.error(f"inspect: {path.name}: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    print(f"  cols={list(df.columns)}")
    for record in df.to_dict(orient="records"):
        print("  row=", record)
    return EXIT_SUCCESS_ALL


def _write_sql(path: Path, create_sql: str, load_sql: str) -> None:
    path.write_text(f"{create_sql}\n\n{load_sql}\n", encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む ([] はテストからの明示指定)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        for h in logger.handlers:
            h.setLevel("DEBUG")
        logger.setLevel("DEBUG")
        logger.debug("debug mode enabled")

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    input_path = Path(args.input)
    if not input_path.is_file():
        logger.error(f"input file not found: {input_path}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(input_path, cfg)

    output_path = Path(args.output) if args.output else input_path.with_name(cleaned_file_name_for(input_path.name))
    sql_path = Path(args.sql) if args.sql else input_path.with_name(f"{input_path.stem}_import.sql")
    logger.info(f"Cleaning {input_path} -> {output_path}")

    # 完了するまで .part に書き、成功時のみ置き換える (途中で失敗した出力は残さない)
    part_path = output_path.with_name(output_path.name + ".part")
    error_log = ErrorLogBuffer()
    try:
        source = FileByteSource(input_path)
        with ProgressTracker(description=input_path.name) as tracker:
            pipeline = CleaningPipeline(
                source, cfg, on_progress=tracker, on_log=logger_log_sink, error_log=error_log
            )
            with part_path.open("w", encoding="utf-8", newline="") as out:
                for chunk in pipeline.iter_chunks():
                    out.write(chunk)
            result = pipeline.finish(output_name=output_path.name)
        part_path.replace(output_path)
        _write_sql(sql_path, result.create_sql, result.load_sql)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL
    except OSError as e:
        logger.error(f"output: {e}")
        return EXIT_FATAL
    finally:
        part_path.unlink(missing_ok=True)
        reject_path = error_log.flush()
        if reject_path is not None:
            logger.info(f"rejected rows logged to {reject_path}")

    logger.info(f"sql={sql_path} columns={len(result.headers)}")

    summary_line = render_summary_line(result)
    # log_summary adds the "SUMMARY " prefix itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.stats.malformed_rows > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
