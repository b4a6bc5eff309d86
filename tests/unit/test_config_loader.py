from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from datascrub.config.loader import ConfigError, _validate_config_schema, build_config, default_config, load_config
from datascrub.models.config_models import AdvancedOptions, CleaningConfig, CleaningMode


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.table_name == "customers"
    assert cfg.mode is CleaningMode.ADVANCED
    assert cfg.generate_id is True
    assert cfg.eol_char == "\n"
    assert cfg.advanced.validate_email is True
    assert cfg.advanced.remove_special_chars is False  # 未指定は False
    # 標準フラグの既定値
    assert cfg.remove_duplicates and cfg.remove_empty and cfg.trim_whitespace


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError) as e:
        load_config(temp_workdir / "config" / "nope.yml")
    assert "config file not found" in str(e.value)


def test_load_config_invalid_yaml(temp_workdir: Path):
    p = temp_workdir / "config" / "bad.yml"
    p.write_text("mode: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(p)
    assert "invalid yaml" in str(e.value)


def test_load_config_root_must_be_mapping(temp_workdir: Path):
    p = temp_workdir / "config" / "list.yml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(p)


def test_load_config_empty_file_uses_defaults(temp_workdir: Path):
    p = temp_workdir / "config" / "empty.yml"
    p.write_text("", encoding="utf-8")
    assert load_config(p) == CleaningConfig()


@pytest.mark.parametrize(
    "body,fragment",
    [
        ("eol: WINDOWS\n", "config validation failed"),
        ("mode: turbo\n", "config validation failed"),
        ("unknown_key: 1\n", "config validation failed"),
        ("remove_empty: 'yes'\n", "config validation failed"),
        ("mode: advanced\nadvanced:\n  magic: true\n", "config validation failed"),
        ("table_name: 'drop table;'\n", "config validation failed"),
    ],
)
def test_load_config_schema_violations(temp_workdir: Path, body: str, fragment: str):
    p = temp_workdir / "config" / "c.yml"
    p.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(p)
    assert fragment in str(e.value)


def test_validate_config_schema_missing_schema_file():
    with patch("datascrub.config.loader.SCHEMA_PATH", Path("/nonexistent/schema.json")):
        with pytest.raises(ConfigError) as e:
            _validate_config_schema({})
        assert "config schema not found" in str(e.value)


def test_validate_config_schema_invalid_json_schema():
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        f.write("{ invalid json }")
        temp_path = Path(f.name)
    try:
        with patch("datascrub.config.loader.SCHEMA_PATH", temp_path):
            with pytest.raises(ConfigError) as e:
                _validate_config_schema({})
            assert "invalid schema file" in str(e.value)
    finally:
        temp_path.unlink()


def test_standard_mode_makes_advanced_options_inert():
    cfg = build_config({"mode": "standard", "advanced": {"validate_email": True, "fuzzy_duplicates": True}})
    assert cfg.advanced == AdvancedOptions()
    assert not cfg.advanced.any_enabled


def test_advanced_mode_without_section_enables_defaults():
    cfg = default_config(mode="advanced")
    assert cfg.advanced.validate_email and cfg.advanced.detect_outliers
    assert cfg.advanced.remove_rows_with_empty_values is False
    assert cfg.advanced.enabled_reserved() == []


def test_reserved_options_accepted():
    cfg = default_config(mode="advanced", advanced={"fill_missing": True})
    assert cfg.advanced.enabled_reserved() == ["fill_missing"]


def test_build_config_rejects_unknown_advanced_option():
    with pytest.raises(ConfigError):
        build_config({"mode": "advanced", "advanced": {"teleport": True}})


def test_config_record_rejects_advanced_options_in_standard_mode():
    with pytest.raises(ConfigError):
        CleaningConfig(mode=CleaningMode.STANDARD, advanced=AdvancedOptions(validate_email=True))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"eol": "WINDOWS"},
        {"encoding": "no-such-codec"},
        {"table_name": ""},
        {"mode": "advanced"},  # enum ではなく文字列
    ],
)
def test_config_record_validation(kwargs):
    with pytest.raises(ConfigError):
        CleaningConfig(**kwargs)


@pytest.mark.parametrize(
    "eol,char",
    [("Auto", "\n"), ("LF", "\n"), ("CRLF", "\r\n"), ("CR", "\r"), ("LFCR", "\n\r"), ("NEL", "\x85"), ("LS", "\u2028"), ("PS", "\u2029")],
)
def test_eol_chars(eol: str, char: str):
    assert default_config(eol=eol).eol_char == char
