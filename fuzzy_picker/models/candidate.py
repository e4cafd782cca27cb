"""Candidate models: what gets ranked and what gets picked."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

# Record fields tried, in order, for a display string
DISPLAY_FIELDS = ("display", "text", "item")


def _display_for(item: Any) -> str:
    """Derive the display string for a raw item."""
    if isinstance(item, str):
        return item
    for name in DISPLAY_FIELDS:
        if isinstance(item, Mapping):
            value = item.get(name)
        else:
            value = getattr(item, name, None)
        if value is not None:
            return value if isinstance(value, str) else str(value)
    return str(item)


@dataclass(frozen=True)
class Candidate:
    """One item eligible for ranking.

    The display string (haystack) is resolved once at construction and
    is the only thing the scorer ever looks at.
    """

    value: Any
    display: str

    @classmethod
    def of(cls, item: Any) -> Candidate:
        """Wrap a raw item, deriving its display string.

        Strings display as themselves. Records (mappings or objects) use
        the first present field of display/text/item, anything else falls
        back to str().
        """
        if isinstance(item, Candidate):
            return item
        return cls(value=item, display=_display_for(item))

    def __str__(self) -> str:
        return self.display


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate with its match score (higher is better)."""

    candidate: Candidate
    score: float

    @property
    def display(self) -> str:
        return self.candidate.display


@dataclass(frozen=True)
class GrepMatch:
    """A single line reported by an external grep tool."""

    filename: str
    lnum: int
    col: int
    text: str

    @property
    def location(self) -> str:
        return f"{self.filename}:{self.lnum}:{self.col}"


@dataclass(frozen=True)
class Selection:
    """The candidate the user confirmed, with the query that found it."""

    candidate: Candidate
    query: str

    @property
    def value(self) -> Any:
        return self.candidate.value
