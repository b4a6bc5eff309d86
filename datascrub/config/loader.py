from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import AdvancedOptions, CleaningConfig, CleaningMode, ConfigError

"""Config loader.

Responsibilities:
- Load a YAML cleaning config
- Validate it against config_schema.json (shipped next to this module)
- Apply defaults and build the immutable CleaningConfig
- Make advanced options inert unless mode is advanced
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "build_config",
    "default_config",
    "load_config",
]

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

_STANDARD_FLAGS = (
    "remove_duplicates",
    "remove_empty",
    "trim_whitespace",
    "normalize_values",
    "fix_encoding",
    "generate_id",
)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or not valid JSON,
            or the data violating the schema.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def build_config(data: Mapping[str, Any]) -> CleaningConfig:
    """Build a CleaningConfig from an already validated mapping.

    In standard mode the advanced sub-record is replaced by the inert default
    regardless of what the mapping holds.
    """
    try:
        mode = CleaningMode(data.get("mode", CleaningMode.STANDARD.value))
    except ValueError as e:
        raise ConfigError(f"invalid mode: {data.get('mode')!r}") from e

    if mode is CleaningMode.ADVANCED:
        adv_raw = data.get("advanced")
        if adv_raw is None:
            advanced = AdvancedOptions.advanced_defaults()
        else:
            known = {f.name for f in fields(AdvancedOptions)}
            unknown = set(adv_raw) - known
            if unknown:
                raise ConfigError(f"unknown advanced options: {sorted(unknown)}")
            advanced = AdvancedOptions(**{k: bool(v) for k, v in adv_raw.items()})
    else:
        advanced = AdvancedOptions()

    kwargs: dict[str, Any] = {k: bool(data[k]) for k in _STANDARD_FLAGS if k in data}
    for key in ("table_name", "pk_column", "eol", "encoding"):
        if key in data and data[key] is not None:
            kwargs[key] = str(data[key])
    return CleaningConfig(mode=mode, advanced=advanced, **kwargs)


def default_config(**overrides: Any) -> CleaningConfig:
    """Config with defaults, optionally overridden (same keys as the YAML file)."""
    return build_config(overrides)


def load_config(path: Path) -> CleaningConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)
    return build_config(data)
