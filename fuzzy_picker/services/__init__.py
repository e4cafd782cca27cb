"""Services for fuzzy-picker."""

from fuzzy_picker.services.match import (
    NO_MATCH,
    SCORE_MAX,
    has_match,
    is_match,
    rank,
    score,
)
from fuzzy_picker.services.config import ConfigManager, PickerConfig, PickerOptions
from fuzzy_picker.services.file_cache import FileListCache
from fuzzy_picker.services.runner import ProcessRunner
from fuzzy_picker.services.session import ResultSink, SearchSession, open_session

__all__ = [
    "NO_MATCH",
    "SCORE_MAX",
    "has_match",
    "is_match",
    "rank",
    "score",
    "ConfigManager",
    "PickerConfig",
    "PickerOptions",
    "FileListCache",
    "ProcessRunner",
    "ResultSink",
    "SearchSession",
    "open_session",
]
