"""Data models for fuzzy-picker."""

from .candidate import Candidate, GrepMatch, ScoredCandidate, Selection
from .notice import Notice, NoticeSeverity
from .exceptions import (
    PickerError,
    SourceError,
    SourceUnavailableError,
    FetchFailedError,
    ConfigError,
    ConfigValidationError,
)

__all__ = [
    # Candidates
    "Candidate",
    "GrepMatch",
    "ScoredCandidate",
    "Selection",
    # Notices
    "Notice",
    "NoticeSeverity",
    # Exceptions
    "PickerError",
    "SourceError",
    "SourceUnavailableError",
    "FetchFailedError",
    "ConfigError",
    "ConfigValidationError",
]
