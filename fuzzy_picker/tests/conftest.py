"""Shared test fixtures for fuzzy-picker."""

import asyncio
from pathlib import Path

import pytest

from fuzzy_picker.models.candidate import Candidate
from fuzzy_picker.models.notice import Notice
from fuzzy_picker.services.config import ConfigManager, PickerConfig, PickerOptions
from fuzzy_picker.services.file_cache import FileListCache
from fuzzy_picker.sources.base import DynamicSource, batch_of


class RecordingSink:
    """Result sink that remembers everything pushed to it."""

    def __init__(self) -> None:
        self.lists: list[tuple[list[str], int]] = []
        self.notices: list[Notice] = []

    def on_ranked_list_changed(self, items: list[Candidate], selected_index: int) -> None:
        self.lists.append(([c.display for c in items], selected_index))

    def on_notice(self, notice: Notice) -> None:
        self.notices.append(notice)

    @property
    def last(self) -> list[str] | None:
        return self.lists[-1][0] if self.lists else None

    @property
    def last_selected(self) -> int | None:
        return self.lists[-1][1] if self.lists else None


class FakeSource:
    """Scriptable dynamic source that records every fetch.

    `results` maps a query to the stream items yielded for it: lists of
    raw strings become candidate batches, Notices pass through as-is.
    After `block_after` items the fetch waits until release() is called.
    """

    def __init__(self) -> None:
        self.results: dict[str, list] = {}
        self.calls: list[str] = []
        self.cancelled: list[str] = []
        self.completed: list[str] = []
        self.error: Exception | None = None
        self.block_after: int | None = None
        self.narrows = True
        self._gate: asyncio.Event | None = None

    def release(self) -> None:
        self.block_after = None
        if self._gate is not None:
            self._gate.set()

    async def fetch(self, query: str):
        self.calls.append(query)
        try:
            for i, item in enumerate(self.results.get(query, [])):
                if self.block_after is not None and i >= self.block_after:
                    self._gate = asyncio.Event()
                    await self._gate.wait()
                await asyncio.sleep(0)
                yield item if isinstance(item, Notice) else batch_of(item)
            if self.error is not None:
                raise self.error
            self.completed.append(query)
        except asyncio.CancelledError:
            self.cancelled.append(query)
            raise

    def source(self) -> DynamicSource:
        return DynamicSource(fetch=self.fetch, narrows_on_extension=self.narrows, name="fake")


class FakeRunner:
    """ProcessRunner stand-in yielding scripted output batches."""

    def __init__(self, available=("fd", "rg")) -> None:
        self.available = set(available)
        self.batches: list[list[str]] = []
        self.error: Exception | None = None
        self.commands: list[list[str]] = []
        self.cwds: list[Path | None] = []
        self.ok_codes: list[tuple] = []

    def is_available(self, executable: str) -> bool:
        return executable in self.available

    async def stream_lines(self, cmd, cwd=None, ok_codes=(0,)):
        self.commands.append(list(cmd))
        self.cwds.append(cwd)
        self.ok_codes.append(tuple(ok_codes))
        for batch in self.batches:
            yield list(batch)
        if self.error is not None:
            raise self.error


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def settle(seconds: float = 0.02) -> None:
    """Let timers and fetch tasks run."""
    await asyncio.sleep(seconds)


async def collect(stream) -> list:
    """Drain an async iterator into a list."""
    return [item async for item in stream]


@pytest.fixture
def sink() -> RecordingSink:
    """Fresh recording sink."""
    return RecordingSink()


@pytest.fixture
def fake_source() -> FakeSource:
    """Scriptable dynamic source."""
    return FakeSource()


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Runner with fd and rg available."""
    return FakeRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def file_cache(clock: FakeClock) -> FileListCache:
    """File listing cache on a fake clock."""
    return FileListCache(ttl_seconds=30.0, clock=clock)


@pytest.fixture
def fast_options() -> PickerOptions:
    """Session options with no debounce or flush delay."""
    return PickerOptions(max_results=10, debounce_interval_ms=0, flush_interval_ms=0)


@pytest.fixture
def picker_config() -> PickerConfig:
    return PickerConfig(file_match_limit=3)


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """ConfigManager with temp directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return ConfigManager(config_dir=config_dir)
