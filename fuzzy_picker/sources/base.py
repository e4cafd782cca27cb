"""Data source adapters: where candidates come from.

A source is resolved once, when a session opens, into one of two variants:

- StaticSource: a finite, already-available sequence of candidates.
- DynamicSource: an async producer that, given a query, yields batches of
  candidates (and optionally notices) until it completes.

Dynamic sources signal failure by raising from the stream:
SourceUnavailableError before anything was produced, FetchFailedError
after zero or more batches. Cancelling the consuming task cancels the
fetch; sources release their external resources in a finally block.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from ..models.candidate import Candidate
from ..models.notice import Notice

# One item of a dynamic stream: a batch of candidates or a notice
StreamItem = Union[Sequence[Candidate], Notice]
FetchFn = Callable[[str], AsyncIterator[StreamItem]]


@dataclass(frozen=True)
class StaticSource:
    """A fixed candidate list, ranked synchronously on every edit."""

    candidates: tuple[Candidate, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, items: Iterable[Any]) -> StaticSource:
        """Build from raw items, resolving display strings once."""
        return cls(tuple(Candidate.of(item) for item in items))

    def __len__(self) -> int:
        return len(self.candidates)


@dataclass(frozen=True)
class DynamicSource:
    """An asynchronous, possibly expensive candidate producer.

    Attributes:
        fetch: query -> async iterator of batches/notices
        narrows_on_extension: Precondition declared by the adapter. True
            means results for `query + suffix` are always a subset of the
            results for `query`, so a session may refine cached results
            locally instead of fetching again. Sources backed by literal
            substring filters (or that ignore the query) satisfy this;
            regex or fuzzy external filters may not.
        name: Label used in logs and notices
    """

    fetch: FetchFn
    narrows_on_extension: bool = True
    name: str = "source"


Source = Union[StaticSource, DynamicSource]


def as_source(source: Any) -> Source:
    """Resolve a list, a fetch callable or a source into a Source variant."""
    if isinstance(source, (StaticSource, DynamicSource)):
        return source
    if callable(source):
        return DynamicSource(fetch=source, name=getattr(source, "__name__", "source"))
    if isinstance(source, (str, bytes)):
        raise TypeError("source must be an iterable of items, not a string")
    return StaticSource.of(source)


def batch_of(items: Iterable[Any]) -> list[Candidate]:
    """Wrap raw items as a candidate batch."""
    return [Candidate.of(item) for item in items]
