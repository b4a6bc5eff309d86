from __future__ import annotations

import json

import jsonschema
import pytest
import yaml
from jsonschema.exceptions import ValidationError

from datascrub.config.loader import SCHEMA_PATH

"""Config schema contract test."""


def _schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_config_schema_valid_example(sample_config_yaml: str):
    config = yaml.safe_load(sample_config_yaml)
    jsonschema.validate(config, _schema())


def test_config_schema_accepts_empty_mapping():
    jsonschema.validate({}, _schema())


@pytest.mark.parametrize(
    "config",
    [
        {"mode": "turbo"},
        {"eol": "CRCR"},
        {"table_name": "bad name;"},
        {"table_name": ""},
        {"trim_whitespace": "yes"},
        {"advanced": {"validate_phone": True}},
        {"unknown_key": 1},
    ],
)
def test_config_schema_rejects_invalid(config: dict):
    with pytest.raises(ValidationError):
        jsonschema.validate(config, _schema())


def test_every_eol_name_is_in_schema():
    from datascrub.models.config_models import EOL_CHARS

    assert _schema()["properties"]["eol"]["enum"] == list(EOL_CHARS)
