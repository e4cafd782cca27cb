"""Project file listing source.

Lists files with fd (or `rg --files` when fd is missing). The listing does
not depend on the query, so refinement always applies and every keystroke
after the first is a local re-rank. Listings are shared through a
FileListCache so reopening the picker in the same directory does not spawn
another process while the entry is fresh.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path

from ..models.candidate import Candidate
from ..models.exceptions import SourceUnavailableError
from ..models.notice import Notice
from ..services.config import PickerConfig
from ..services.file_cache import FileListCache
from ..services.parse import normalize_args
from ..services.runner import ProcessRunner
from .base import DynamicSource, StreamItem

logger = logging.getLogger(__name__)

NOIGNORE_FLAG = "--noignore"
_SHORT_LIMIT = re.compile(r"^-n\d+$")


def has_custom_limit(args: list[str]) -> bool:
    """Check whether user args already cap the number of results."""
    for arg in args:
        if arg in ("--max-results", "-n") or _SHORT_LIMIT.match(arg):
            return True
    return False


def build_fd_command(args: list[str], limit: int | None) -> list[str]:
    """fd invocation listing files, optionally capped at `limit` results."""
    include_vcs = NOIGNORE_FLAG in args
    extra = [arg for arg in args if arg != NOIGNORE_FLAG]

    cmd = ["fd", "--type", "f", "--hidden", "--follow", "--color", "never", "--exclude", ".git"]
    if include_vcs:
        cmd.append("--no-ignore-vcs")
    if limit is not None:
        cmd.extend(["--max-results", str(limit)])
    cmd.extend(extra)
    return cmd


def build_rg_files_command(args: list[str]) -> list[str]:
    """Fallback listing via `rg --files` (no result cap available)."""
    include_vcs = NOIGNORE_FLAG in args
    extra = [arg for arg in args if arg != NOIGNORE_FLAG]

    cmd = ["rg", "--files", "--hidden", "--follow", "--color=never", "--glob", "!.git/*"]
    if include_vcs:
        cmd.append("--no-ignore-vcs")
    cmd.extend(extra)
    return cmd


def files_source(
    runner: ProcessRunner,
    cache: FileListCache,
    config: PickerConfig,
    extra_args: str | list[str] | None = None,
    cwd: Path | None = None,
) -> DynamicSource:
    """Create a source listing project files under cwd.

    Args:
        runner: Process runner used to spawn fd/rg
        cache: Shared listing cache (keyed by cwd)
        config: Supplies file_match_limit
        extra_args: Extra tool arguments; `--noignore` includes VCS-ignored files
        cwd: Directory to list (defaults to the current directory)
    """
    args = normalize_args(extra_args)
    custom_limit = has_custom_limit(args)
    match_limit = config.file_match_limit

    async def fetch(query: str) -> AsyncIterator[StreamItem]:
        root = (cwd or Path.cwd()).resolve()
        # Listings made with user args are not comparable, don't share them
        cacheable = not args

        if cacheable:
            listing = cache.get(root)
            if listing is not None:
                logger.debug(f"File listing cache hit for {root}")
                yield [Candidate.of(path) for path in listing.files]
                if listing.truncated:
                    yield Notice.info(f"showing first {match_limit} files")
                return

        if runner.is_available("fd"):
            sentinel = None if custom_limit else match_limit + 1
            cmd = build_fd_command(args, sentinel)
        elif runner.is_available("rg"):
            cmd = build_rg_files_command(args)
        else:
            raise SourceUnavailableError(
                "files: neither 'fd' nor 'rg' executable found",
                suggestion="install fd or ripgrep",
            )

        collected: list[str] = []
        truncated = False
        async with aclosing(runner.stream_lines(cmd, cwd=root)) as stream:
            async for lines in stream:
                if not custom_limit:
                    room = match_limit - len(collected)
                    if len(lines) > room:
                        truncated = True
                        lines = lines[:max(room, 0)]
                if lines:
                    collected.extend(lines)
                    yield [Candidate.of(path) for path in lines]
                if truncated:
                    break

        if cacheable:
            cache.put(root, collected, truncated=truncated)
        if truncated:
            yield Notice.info(f"showing first {match_limit} files")

    return DynamicSource(fetch=fetch, narrows_on_extension=True, name="files")
