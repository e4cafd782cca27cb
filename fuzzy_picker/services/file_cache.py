"""FileListCache: a file listing keyed by working directory with a TTL."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable


@dataclass(frozen=True)
class FileListing:
    """A cached listing for one working directory."""

    cwd: Path
    files: tuple[str, ...]
    truncated: bool
    created_at: float


class FileListCache:
    """Holds the most recent file listing.

    The entry is valid only for the directory it was listed in and only
    until it is older than the TTL. The clock is injectable for tests.

    Example:
        cache = FileListCache(ttl_seconds=30)
        cache.put(Path.cwd(), files, truncated=False)
        listing = cache.get(Path.cwd())  # None once stale or cwd changed
    """

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entry: FileListing | None = None

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, cwd: Path) -> FileListing | None:
        """Return the listing for cwd if present and fresh."""
        entry = self._entry
        if entry is None:
            return None
        if entry.cwd != cwd:
            return None
        if self._clock() - entry.created_at >= self._ttl:
            self._entry = None
            return None
        return entry

    def put(self, cwd: Path, files: list[str], truncated: bool = False) -> FileListing:
        """Store a listing for cwd, replacing any previous one."""
        entry = FileListing(
            cwd=cwd,
            files=tuple(files),
            truncated=truncated,
            created_at=self._clock(),
        )
        self._entry = entry
        return entry

    def invalidate(self) -> None:
        """Drop the cached listing."""
        self._entry = None
