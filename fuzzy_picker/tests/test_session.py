"""Tests for SearchSession refinement, debouncing and cancellation."""

import asyncio

from fuzzy_picker.models.exceptions import FetchFailedError, SourceUnavailableError
from fuzzy_picker.models.notice import Notice, NoticeSeverity
from fuzzy_picker.services.config import PickerOptions
from fuzzy_picker.services.match import rank
from fuzzy_picker.services.session import SearchSession, open_session
from fuzzy_picker.sources.base import DynamicSource

from conftest import settle

FILES = ["main.lua", "config.lua", "util.ts"]


def names(session: SearchSession) -> list[str]:
    return [c.display for c in session.display_list]


class TestStaticSession:
    """Sessions over a fixed list rank synchronously."""

    def test_initial_list(self, sink):
        session = SearchSession.open(FILES, sink=sink)
        assert sink.lists == [(FILES, 1)]
        assert session.selected.display == "main.lua"

    def test_query_ranks(self, sink):
        session = SearchSession.open(FILES, sink=sink)
        session.set_query("cfg")
        assert sink.last == ["config.lua"]
        assert sink.last_selected == 1
        assert session.query == "cfg"

    def test_no_matches(self, sink):
        session = SearchSession.open(FILES, sink=sink)
        session.set_query("zzz")
        assert sink.last == []
        assert session.selected is None

    def test_records_use_display_field(self, sink):
        items = [{"display": "alpha", "id": 1}, {"text": "beta", "id": 2}]
        session = SearchSession.open(items, sink=sink)
        session.set_query("bet")
        assert session.selected.value == {"text": "beta", "id": 2}

    def test_max_results(self, sink):
        session = SearchSession.open(
            [f"f{i}" for i in range(10)],
            options=PickerOptions(max_results=3),
            sink=sink,
        )
        assert sink.last == ["f0", "f1", "f2"]
        session.set_query("f")
        assert len(sink.last) == 3

    def test_open_session_helper(self):
        session = open_session(["a", "b"])
        assert names(session) == ["a", "b"]


class TestSelection:
    """Cursor movement and confirmation."""

    def test_wraps_both_ends(self, sink):
        session = SearchSession.open(["a", "b", "c"], sink=sink)
        session.move_selection(-1)
        assert session.selected_index == 3
        assert sink.last_selected == 3
        session.move_selection(1)
        assert session.selected_index == 1
        session.move_selection(4)
        assert session.selected_index == 2

    def test_move_on_empty_list_is_noop(self, sink):
        session = SearchSession.open([], sink=sink)
        pushes = len(sink.lists)
        session.move_selection(1)
        assert session.selected_index == 1
        assert len(sink.lists) == pushes

    def test_query_edit_resets_cursor(self, sink):
        session = SearchSession.open(["a", "b", "c"], sink=sink)
        session.move_selection(2)
        assert session.selected_index == 3
        session.set_query("")
        assert session.selected_index == 1

    def test_confirm_calls_on_select_and_closes(self, sink):
        picked = []
        session = SearchSession.open(
            FILES,
            sink=sink,
            on_select=lambda candidate, query: picked.append((candidate.display, query)),
        )
        session.set_query("lua")
        session.move_selection(1)
        expected = session.selected.display

        selection = session.confirm_selection()

        assert selection.candidate.display == expected
        assert selection.query == "lua"
        assert picked == [(expected, "lua")]
        assert session.closed

    def test_confirm_empty_returns_none(self, sink):
        picked = []
        session = SearchSession.open(FILES, sink=sink, on_select=lambda c, q: picked.append(c))
        session.set_query("zzz")
        assert session.confirm_selection() is None
        assert picked == []
        assert not session.closed

    def test_close_is_idempotent(self, sink):
        session = SearchSession.open(FILES, sink=sink)
        session.close()
        session.close()
        pushes = len(sink.lists)
        session.set_query("cfg")
        session.move_selection(1)
        assert len(sink.lists) == pushes
        assert session.confirm_selection() is None


class TestDynamicSession:
    """Sessions over an asynchronous source."""

    def test_starts_empty(self, sink, fake_source, fast_options):
        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            await settle()
            assert sink.lists == [([], 1)]
            assert fake_source.calls == []
            session.close()

        asyncio.run(scenario())

    def test_fetch_fills_list(self, sink, fake_source, fast_options):
        fake_source.results["ma"] = [["main.lua", "make.sh", "xyz"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("ma")
            await settle()
            assert fake_source.calls == ["ma"]
            assert sink.last == ["make.sh", "main.lua"]
            assert session.cache_query == "ma"
            assert len(session.cached_candidates) == 3
            assert not session.is_fetching
            session.close()

        asyncio.run(scenario())

    def test_extension_refines_without_fetch(self, sink, fake_source, fast_options):
        fake_source.results["ab"] = [["abc", "abd", "xab", "a_b_c"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("ab")
            await settle()

            session.set_query("abc")

            assert not session.is_debouncing
            assert session.display_list == [
                entry.candidate for entry in rank("abc", session.cached_candidates, 10)
            ]
            assert names(session) == ["abc", "a_b_c"]
            await settle()
            assert fake_source.calls == ["ab"]
            session.close()

        asyncio.run(scenario())

    def test_non_extension_cancels_and_refetches(self, sink, fake_source, fast_options):
        fake_source.results["ab"] = [["ab1"], ["ab2"]]
        fake_source.results["b"] = [["b1"]]
        fake_source.block_after = 1

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("ab")
            await settle()
            assert session.is_fetching

            session.set_query("b")
            assert session.is_debouncing
            assert session.cache_query is None
            fake_source.release()
            await settle()

            assert fake_source.cancelled == ["ab"]
            assert fake_source.calls == ["ab", "b"]
            assert sink.last == ["b1"]
            assert "ab2" not in [c.display for c in session.cached_candidates]
            session.close()

        asyncio.run(scenario())

    def test_old_cache_ranked_while_debouncing(self, sink, fake_source):
        """Until the new fetch lands, the previous results are ranked by the new query."""
        options = PickerOptions(max_results=10, debounce_interval_ms=30, flush_interval_ms=0)
        fake_source.results["ab"] = [["lab.md", "xab.md"]]
        fake_source.results["x"] = [["x1"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=options, sink=sink)
            session.set_query("ab")
            await asyncio.sleep(0.06)
            assert sink.last == ["lab.md", "xab.md"]

            session.set_query("x")
            assert session.is_debouncing
            assert sink.last == ["xab.md"]

            await asyncio.sleep(0.06)
            assert fake_source.calls == ["ab", "x"]
            assert sink.last == ["x1"]
            session.close()

        asyncio.run(scenario())

    def test_debounce_coalesces_edits(self, sink, fake_source):
        options = PickerOptions(max_results=10, debounce_interval_ms=30, flush_interval_ms=0)
        fake_source.results["abc"] = [["abc"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=options, sink=sink)
            session.set_query("a")
            session.set_query("ab")
            session.set_query("abc")
            await asyncio.sleep(0.005)
            assert fake_source.calls == []
            assert session.is_debouncing

            await asyncio.sleep(0.1)
            assert fake_source.calls == ["abc"]
            assert sink.last == ["abc"]
            session.close()

        asyncio.run(scenario())

    def test_refinement_while_streaming(self, sink, fake_source, fast_options):
        """Batches that arrive after a refinement are ranked by the new query."""
        fake_source.results["a"] = [["alpha", "beta"], ["apple", "banana", "avocado"]]
        fake_source.block_after = 1

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("a")
            await settle()
            assert sink.last == ["alpha", "beta"]

            session.set_query("ap")
            assert sink.last == ["alpha"]
            assert session.is_fetching

            fake_source.release()
            await settle()
            assert sink.last == ["apple", "alpha"]
            assert fake_source.calls == ["a"]
            assert fake_source.cancelled == []
            session.close()

        asyncio.run(scenario())

    def test_flush_coalesces_batches(self, sink, fake_source):
        options = PickerOptions(max_results=10, debounce_interval_ms=0, flush_interval_ms=20)
        fake_source.results["a"] = [["a1"], ["a2"], ["a3"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=options, sink=sink)
            session.set_query("a")
            await asyncio.sleep(0.05)
            filled = [displays for displays, _ in sink.lists if displays]
            assert filled == [["a1", "a2", "a3"]]
            session.close()

        asyncio.run(scenario())

    def test_close_during_fetch(self, sink, fake_source, fast_options):
        fake_source.results["a"] = [["a1"], ["a2"]]
        fake_source.block_after = 1

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("a")
            await settle()
            pushes = len(sink.lists)

            session.close()
            fake_source.release()
            await settle()

            assert fake_source.cancelled == ["a"]
            assert len(sink.lists) == pushes
            assert not session.is_fetching

        asyncio.run(scenario())

    def test_close_during_debounce(self, sink, fake_source):
        options = PickerOptions(debounce_interval_ms=20, flush_interval_ms=0)

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=options, sink=sink)
            session.set_query("a")
            session.close()
            await asyncio.sleep(0.05)
            assert fake_source.calls == []
            assert not session.is_debouncing

        asyncio.run(scenario())

    def test_empty_query_resets(self, sink, fake_source, fast_options):
        fake_source.results["a"] = [["a1", "a2"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("a")
            await settle()
            assert sink.last == ["a1", "a2"]

            session.set_query("")
            assert sink.last == []
            assert session.cache_query is None
            assert session.cached_candidates == ()
            await settle()
            assert fake_source.calls == ["a"]
            session.close()

        asyncio.run(scenario())

    def test_narrowing_disabled_always_refetches(self, sink, fake_source, fast_options):
        fake_source.narrows = False
        fake_source.results["ab"] = [["ab", "abc"]]
        fake_source.results["abc"] = [["abc"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("ab")
            await settle()
            session.set_query("abc")
            assert session.is_debouncing
            await settle()
            assert fake_source.calls == ["ab", "abc"]
            session.close()

        asyncio.run(scenario())

    def test_without_local_filter(self, sink, fake_source):
        """Results show in arrival order and every edit refetches."""
        options = PickerOptions(
            max_results=2,
            debounce_interval_ms=0,
            flush_interval_ms=0,
            filter_locally=False,
        )
        fake_source.results["z"] = [["c", "b", "a"]]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=options, sink=sink)
            session.set_query("z")
            await settle()
            assert sink.last == ["c", "b"]

            session.set_query("za")
            assert sink.last == []
            await settle()
            assert fake_source.calls == ["z", "za"]
            session.close()

        asyncio.run(scenario())

    def test_notices_are_forwarded(self, sink, fake_source, fast_options):
        fake_source.results["a"] = [["a1"], Notice.info("showing first 1 files")]

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("a")
            await settle()
            assert sink.notices == [Notice.info("showing first 1 files")]
            assert sink.last == ["a1"]
            session.close()

        asyncio.run(scenario())


class TestFailures:
    """Source failures become notices, never exceptions."""

    def test_unavailable_notified_once(self, sink, fast_options):
        calls = []

        async def fetch(query):
            calls.append(query)
            raise SourceUnavailableError("tool missing", suggestion="install it")
            yield []

        async def scenario():
            source = DynamicSource(fetch=fetch, name="broken")
            session = SearchSession.open(source, options=fast_options, sink=sink)
            session.set_query("a")
            await settle()
            session.set_query("ab")
            await settle()

            assert calls == ["a", "ab"]
            assert len(sink.notices) == 1
            assert sink.notices[0].severity == NoticeSeverity.ERROR
            assert sink.notices[0].message == "tool missing (install it)"
            assert session.cache_query is None
            assert sink.last == []
            session.close()

        asyncio.run(scenario())

    def test_fetch_failure_keeps_partial_results(self, sink, fake_source, fast_options):
        fake_source.results["a"] = [["a1", "a2"]]
        fake_source.error = FetchFailedError("boom", status=2)

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("a")
            await settle()

            assert sink.last == ["a1", "a2"]
            assert sink.notices == [Notice.error("boom")]
            assert session.cache_query is None
            assert not session.is_fetching

            # Incomplete cache cannot be refined, so the next edit refetches
            session.set_query("a1")
            await settle()
            assert fake_source.calls == ["a", "a1"]
            session.close()

        asyncio.run(scenario())

    def test_unexpected_error_is_contained(self, sink, fake_source, fast_options):
        fake_source.results["a"] = [["a1"]]
        fake_source.error = RuntimeError("kaput")

        async def scenario():
            session = SearchSession.open(fake_source.source(), options=fast_options, sink=sink)
            session.set_query("a")
            await settle()
            assert sink.last == ["a1"]
            assert len(sink.notices) == 1
            assert "kaput" in sink.notices[0].message
            session.close()

        asyncio.run(scenario())
