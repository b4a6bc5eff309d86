"""Domain models for the streaming CSV cleaner."""

from .config_models import AdvancedOptions, CleaningConfig, CleaningMode, ConfigError
from .error_record import ErrorRecord
from .errors import ProcessingError, SourceReadError
from .header_layout import HeaderLayout, build_header_layout
from .log_entry import LogEntry, LogSeverity, LogTranscript
from .processing_result import CleaningResult, CleaningStats

__all__ = [
    # Configuration models
    "AdvancedOptions",
    "CleaningConfig",
    "CleaningMode",
    "ConfigError",
    # Processing models
    "ErrorRecord",
    "ProcessingError",
    "SourceReadError",
    "HeaderLayout",
    "build_header_layout",
    "LogEntry",
    "LogSeverity",
    "LogTranscript",
    "CleaningResult",
    "CleaningStats",
]
