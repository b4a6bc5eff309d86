from __future__ import annotations

import codecs
from dataclasses import dataclass, field, fields
from enum import Enum

"""Config dataclasses for the streaming CSV cleaner.

The configuration is created once per run (see datascrub.config.loader) and is
never mutated by the pipeline. Options that only make sense in advanced mode
live in a separate sub-record so that a standard-mode config cannot carry them.
"""

__all__ = [
    "ConfigError",
    "CleaningMode",
    "AdvancedOptions",
    "CleaningConfig",
    "EOL_CHARS",
    "RESERVED_OPTIONS",
]


class ConfigError(Exception):
    pass


class CleaningMode(Enum):
    STANDARD = "standard"
    ADVANCED = "advanced"


EOL_CHARS: dict[str, str] = {
    "Auto": "\n",
    "LF": "\n",
    "CRLF": "\r\n",
    "CR": "\r",
    "LFCR": "\n\r",
    "NEL": "\u0085",
    "LS": "\u2028",
    "PS": "\u2029",
}

# 受理するが変換実装なし (予約フラグ)
RESERVED_OPTIONS = ("cross_field_validation", "fill_missing", "standardize_address")


@dataclass(frozen=True)
class AdvancedOptions:
    """Transforms that only run in advanced mode.

    The default instance has every option disabled; it is what a standard-mode
    config carries.
    """
    fuzzy_duplicates: bool = False
    validate_email: bool = False
    standardize_phone: bool = False
    normalize_case: bool = False
    standardize_date: bool = False
    detect_outliers: bool = False
    remove_special_chars: bool = False
    remove_html_tags: bool = False
    fix_number_formats: bool = False
    remove_rows_with_empty_values: bool = False
    # reserved: accepted, no transform behind them
    cross_field_validation: bool = False
    fill_missing: bool = False
    standardize_address: bool = False

    @classmethod
    def advanced_defaults(cls) -> AdvancedOptions:
        """Options enabled when mode=advanced and no advanced section is given."""
        off = set(RESERVED_OPTIONS) | {"remove_rows_with_empty_values"}
        return cls(**{f.name: f.name not in off for f in fields(cls)})

    @property
    def any_enabled(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))

    def enabled_reserved(self) -> list[str]:
        return [name for name in RESERVED_OPTIONS if getattr(self, name)]


@dataclass(frozen=True)
class CleaningConfig:
    """Root configuration object for one cleaning run.

    Scalar settings describe the target table and the output file; the boolean
    flags select which cleaning steps run.
    """
    table_name: str = "my_data"
    pk_column: str = "id"  # 空文字なら主キー列を追加しない
    eol: str = "Auto"
    encoding: str = "utf-8"
    mode: CleaningMode = CleaningMode.STANDARD
    remove_duplicates: bool = True
    remove_empty: bool = True
    trim_whitespace: bool = True
    normalize_values: bool = True
    fix_encoding: bool = True
    generate_id: bool = False
    advanced: AdvancedOptions = field(default_factory=AdvancedOptions)

    def __post_init__(self) -> None:
        if not isinstance(self.mode, CleaningMode):
            raise ConfigError(f"invalid mode: {self.mode!r}")
        if self.eol not in EOL_CHARS:
            raise ConfigError(f"invalid eol: {self.eol!r} (expected one of {', '.join(EOL_CHARS)})")
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ConfigError(f"unknown encoding: {self.encoding!r}") from e
        if not self.table_name:
            raise ConfigError("table_name must not be empty")
        if self.mode is CleaningMode.STANDARD and self.advanced.any_enabled:
            raise ConfigError("advanced options require mode=advanced")

    @property
    def is_advanced(self) -> bool:
        return self.mode is CleaningMode.ADVANCED

    @property
    def eol_char(self) -> str:
        return EOL_CHARS[self.eol]
