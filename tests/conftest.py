# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path

import pytest

from datascrub.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DATASCRUB_CONFIG", raising=False)
        yield p


@pytest.fixture()
def clean_logging():
    # ロガーは stdout をハンドラ生成時に束縛するためテスト毎に作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table_name: customers
pk_column: id
eol: LF
encoding: utf-8
mode: advanced
generate_id: true
advanced:
  fuzzy_duplicates: true
  validate_email: true
  standardize_phone: true
  normalize_case: true
  standardize_date: true
  detect_outliers: true
  remove_html_tags: true
  fix_number_formats: true
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "datascrub.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def dirty_csv_text() -> str:
    return (
        "Name,E-mail,Phone,Signup Date,Amount,Description\n"
        "john doe,JOHN@GMIAL.COM,555.123.4567,15/03/2024,\"$1,234.50\",1234567\n"
        "Jane  Smith , jane@yahooo.com ,(555) 987 6543,2024-01-02,12.00,<b>vip</b>\n"
        "john doe,JOHN@GMIAL.COM,555.123.4567,15/03/2024,\"$1,234.50\",1234567\n"
        ",,,,,\n"
        "Bob Brown,N/A,-,null,7.5,#REF!\n"
    )


@pytest.fixture()
def dirty_csv(temp_workdir: Path, dirty_csv_text: str) -> Path:
    path = temp_workdir / "data" / "customers.csv"
    path.write_text(dirty_csv_text, encoding="utf-8")
    return path
