"""SearchSession: keeps a ranked view live as the query changes.

For every query edit the session picks the cheapest correct way to
produce an up-to-date ranked list:

- Static source: rank the whole list synchronously.
- Dynamic source, empty query: cancel everything and clear.
- Dynamic source, query extends the query that produced the cache:
  re-rank the cache locally (no fetch, no debounce).
- Otherwise: cancel the in-flight fetch and debounce a new one.

All state lives on the event loop thread. Fetches run as a single
asyncio.Task; timers are loop.call_later handles. Every callback checks
that the session is still open and that its fetch has not been
superseded before touching state, and the display list is always
re-derived from the freshest (cache, current query) pair, so event
ordering between edits and arriving data does not matter.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Any, Callable, Protocol

from ..models.candidate import Candidate, ScoredCandidate, Selection
from ..models.exceptions import FetchFailedError, SourceUnavailableError
from ..models.notice import Notice
from ..sources.base import DynamicSource, Source, StaticSource, as_source
from .config import PickerOptions
from .match import rank

logger = logging.getLogger(__name__)


class ResultSink(Protocol):
    """Receives ranked lists and notices from a session."""

    def on_ranked_list_changed(self, items: list[Candidate], selected_index: int) -> None:
        """Called on every re-rank. selected_index is 1-based."""
        ...

    def on_notice(self, notice: Notice) -> None:
        """Called with user-visible informational messages."""
        ...


SelectCallback = Callable[[Candidate, str], Any]


class SearchSession:
    """Per-picker search state and refinement policy.

    Example:
        session = SearchSession.open(["main.lua", "config.lua"], sink=screen)
        session.set_query("cfg")
        session.move_selection(1)
        selection = session.confirm_selection()
    """

    def __init__(
        self,
        source: Source | Any,
        options: PickerOptions | None = None,
        sink: ResultSink | None = None,
        on_select: SelectCallback | None = None,
    ) -> None:
        """Initialize a session without rendering anything.

        Args:
            source: A Source, a list of items, or a fetch callable
            options: Session options (defaults if omitted)
            sink: Receiver of ranked lists and notices
            on_select: Called with (candidate, query) on confirmation
        """
        self._source = as_source(source)
        self._options = options or PickerOptions()
        self._sink = sink
        self._on_select = on_select

        self._query = ""
        self._selected = 1
        self._cache_query: str | None = None
        self._cache: list[Candidate] = []
        self._pending: list[Candidate] = []
        self._display: list[ScoredCandidate] = []

        self._task: asyncio.Task | None = None
        self._debounce: asyncio.TimerHandle | None = None
        self._flush: asyncio.TimerHandle | None = None
        self._generation = 0
        self._closed = False
        self._unavailable_reported = False

    @classmethod
    def open(
        cls,
        source: Source | Any,
        options: PickerOptions | None = None,
        sink: ResultSink | None = None,
        on_select: SelectCallback | None = None,
    ) -> SearchSession:
        """Create a session and render its initial list."""
        session = cls(source, options=options, sink=sink, on_select=on_select)
        session._rerank()
        return session

    # --- State accessors ---

    @property
    def source(self) -> Source:
        return self._source

    @property
    def options(self) -> PickerOptions:
        return self._options

    @property
    def query(self) -> str:
        return self._query

    @property
    def selected_index(self) -> int:
        """1-based cursor into the displayed list."""
        return self._selected

    @property
    def cache_query(self) -> str | None:
        """Query that produced the cached external results (None if no cache)."""
        return self._cache_query

    @property
    def cached_candidates(self) -> tuple[Candidate, ...]:
        return tuple(self._cache)

    @property
    def ranked(self) -> list[ScoredCandidate]:
        return list(self._display)

    @property
    def display_list(self) -> list[Candidate]:
        return [entry.candidate for entry in self._display]

    @property
    def selected(self) -> Candidate | None:
        if not self._display:
            return None
        return self._display[self._selected - 1].candidate

    @property
    def is_fetching(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_debouncing(self) -> bool:
        return self._debounce is not None

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Control surface ---

    def set_query(self, text: str) -> None:
        """Apply a query edit."""
        if self._closed:
            return
        self._query = text
        self._selected = 1

        if isinstance(self._source, StaticSource):
            self._rerank()
            return

        if not text:
            self._reset()
            return

        if self._can_refine(text):
            logger.debug(f"Refining cached results for {self._cache_query!r} with {text!r}")
            self._cancel_debounce()
            self._rerank()
            return

        if self._cancel_fetch():
            # The cache never completed, it cannot serve refinements
            self._cache_query = None
        self._schedule_fetch()
        if not self._options.filter_locally:
            self._display = []
            self._push()
        else:
            self._rerank()

    def move_selection(self, delta: int) -> None:
        """Move the cursor, wrapping around both ends."""
        if self._closed or not self._display:
            return
        count = len(self._display)
        self._selected = (self._selected - 1 + delta) % count + 1
        self._push()

    def confirm_selection(self) -> Selection | None:
        """Pick the selected candidate and close the session.

        Returns None (and stays open) when nothing is displayed.
        """
        if self._closed or not self._display:
            return None
        selection = Selection(candidate=self.selected, query=self._query)
        self.close()
        if self._on_select is not None:
            self._on_select(selection.candidate, selection.query)
        return selection

    def close(self) -> None:
        """Cancel pending work and stop all callbacks. Safe to call twice."""
        if self._closed:
            return
        self._cancel_fetch()
        self._cancel_debounce()
        self._cancel_flush()
        self._closed = True
        self._pending = []
        logger.debug(f"Closed session {self._options.title!r}")

    # --- Refinement policy ---

    def _can_refine(self, text: str) -> bool:
        source = self._source
        return (
            isinstance(source, DynamicSource)
            and source.narrows_on_extension
            and self._options.filter_locally
            and self._cache_query is not None
            and text.startswith(self._cache_query)
        )

    def _reset(self) -> None:
        """Empty query: drop everything."""
        self._cancel_fetch()
        self._cancel_debounce()
        self._cancel_flush()
        self._cache_query = None
        self._cache = []
        self._pending = []
        self._display = []
        self._push()

    def _schedule_fetch(self) -> None:
        self._cancel_debounce()
        delay = max(self._options.debounce_interval_ms, 0) / 1000
        loop = asyncio.get_running_loop()
        self._debounce = loop.call_later(delay, self._on_debounce_elapsed)

    def _on_debounce_elapsed(self) -> None:
        self._debounce = None
        if self._closed or not self._query:
            return
        self._start_fetch(self._query)

    def _start_fetch(self, query: str) -> None:
        self._cancel_fetch()
        self._cancel_flush()
        self._generation += 1
        self._cache_query = query
        self._cache = []
        self._pending = []

        logger.debug(f"Fetching {self._source.name} for {query!r}")
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._consume(self._generation, query))
        self._rerank()

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._generation

    async def _consume(self, generation: int, query: str) -> None:
        """Drain one fetch into the cache."""
        source = self._source
        try:
            async with aclosing(source.fetch(query)) as stream:
                async for item in stream:
                    if self._is_stale(generation):
                        return
                    if isinstance(item, Notice):
                        self._notify(item)
                        continue
                    self._pending.extend(item)
                    self._schedule_flush()
        except asyncio.CancelledError:
            logger.debug(f"Fetch for {query!r} cancelled")
            raise
        except SourceUnavailableError as e:
            if self._is_stale(generation):
                return
            self._cache_query = None
            self._flush_pending()
            if self._unavailable_reported:
                logger.debug(f"{source.name} still unavailable: {e}")
            else:
                self._unavailable_reported = True
                logger.warning(f"{source.name} unavailable: {e}")
                self._notify(Notice.error(str(e)))
            return
        except FetchFailedError as e:
            if self._is_stale(generation):
                return
            self._fail(query, str(e))
            return
        except Exception as e:
            if self._is_stale(generation):
                return
            logger.exception(f"Unexpected error from {source.name}")
            self._fail(query, f"{source.name} failed: {e}")
            return
        finally:
            if generation == self._generation:
                self._task = None

        if self._is_stale(generation):
            return
        self._flush_pending()

    def _fail(self, query: str, message: str) -> None:
        """Keep whatever arrived, report once, refetch on the next edit."""
        logger.warning(f"Fetch for {query!r} failed: {message}")
        self._cache_query = None
        self._flush_pending()
        self._notify(Notice.error(message))

    # --- Streaming aggregation ---

    def _schedule_flush(self) -> None:
        if self._flush is not None:
            return
        interval = self._options.flush_interval_ms / 1000
        if interval <= 0:
            self._flush_pending()
            return
        loop = asyncio.get_running_loop()
        self._flush = loop.call_later(interval, self._on_flush_timer)

    def _on_flush_timer(self) -> None:
        self._flush = None
        if self._closed:
            return
        self._flush_pending()

    def _flush_pending(self) -> None:
        self._cancel_flush()
        if self._pending:
            self._cache.extend(self._pending)
            self._pending = []
        self._rerank()

    # --- Ranking and output ---

    def _candidates(self) -> list[Candidate] | tuple[Candidate, ...]:
        if isinstance(self._source, StaticSource):
            return self._source.candidates
        return self._cache

    def _rerank(self) -> None:
        candidates = self._candidates()
        limit = self._options.max_results
        if self._options.filter_locally:
            self._display = rank(self._query, candidates, limit)
        else:
            self._display = [ScoredCandidate(c, 0.0) for c in candidates[:limit]]
        self._selected = min(max(self._selected, 1), max(len(self._display), 1))
        self._push()

    def _push(self) -> None:
        if self._closed or self._sink is None:
            return
        self._sink.on_ranked_list_changed(self.display_list, self._selected)

    def _notify(self, notice: Notice) -> None:
        if self._closed or self._sink is None:
            return
        self._sink.on_notice(notice)

    # --- Cancellation ---

    def _cancel_fetch(self) -> bool:
        """Cancel the in-flight fetch. Returns True if one was running."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return False
        # Invalidate before cancelling so nothing from it lands
        self._generation += 1
        task.cancel()
        return True

    def _cancel_debounce(self) -> None:
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def _cancel_flush(self) -> None:
        if self._flush is not None:
            self._flush.cancel()
            self._flush = None


def open_session(
    source: Source | Any,
    options: PickerOptions | None = None,
    sink: ResultSink | None = None,
    on_select: SelectCallback | None = None,
) -> SearchSession:
    """Open a search session over source."""
    return SearchSession.open(source, options=options, sink=sink, on_select=on_select)
