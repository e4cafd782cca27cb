"""Candidate sources for fuzzy-picker."""

from fuzzy_picker.sources.base import (
    DynamicSource,
    Source,
    StaticSource,
    StreamItem,
    as_source,
    batch_of,
)
from fuzzy_picker.sources.files import files_source, has_custom_limit
from fuzzy_picker.sources.grep import grep_source

__all__ = [
    "DynamicSource",
    "Source",
    "StaticSource",
    "StreamItem",
    "as_source",
    "batch_of",
    "files_source",
    "grep_source",
    "has_custom_limit",
]
