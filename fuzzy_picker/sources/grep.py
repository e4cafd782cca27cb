"""Live grep source backed by ripgrep."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path

from ..models.candidate import Candidate
from ..models.exceptions import SourceUnavailableError
from ..services.config import PickerConfig
from ..services.parse import normalize_args, parse_vimgrep
from ..services.runner import ProcessRunner
from .base import DynamicSource, StreamItem

# rg exits 1 when nothing matched
RG_OK_CODES = (0, 1)


def build_rg_command(query: str, args: list[str], fixed_strings: bool) -> list[str]:
    cmd = ["rg", "--vimgrep", "--smart-case", "--color=never"]
    if fixed_strings:
        cmd.append("--fixed-strings")
    cmd.extend(["--regexp", query])
    cmd.extend(args)
    return cmd


def grep_source(
    runner: ProcessRunner,
    config: PickerConfig,
    extra_args: str | list[str] | None = None,
    cwd: Path | None = None,
    dedupe_lines: bool | None = None,
) -> DynamicSource:
    """Create a source that greps for the query.

    Each candidate's value is a GrepMatch and its display string is the
    raw vimgrep line, so local refinement scores the whole location.
    Literal patterns narrow monotonically as the query grows; regex
    patterns do not, so refinement is only enabled for fixed strings.

    rg reports every match on a line separately. Unless dedupe_lines is
    False (default: config.grep_dedupe_lines) only the first report for
    each file:line is kept, in arrival order.
    """
    args = normalize_args(extra_args)
    fixed_strings = config.grep_fixed_strings
    dedupe = config.grep_dedupe_lines if dedupe_lines is None else dedupe_lines

    async def fetch(query: str) -> AsyncIterator[StreamItem]:
        if not runner.is_available("rg"):
            raise SourceUnavailableError(
                "grep: 'rg' executable not found",
                suggestion="install ripgrep",
            )

        cmd = build_rg_command(query, args, fixed_strings)
        seen: set[tuple[str, int]] = set()
        stream = runner.stream_lines(cmd, cwd=cwd, ok_codes=RG_OK_CODES)
        async with aclosing(stream):
            async for lines in stream:
                batch = []
                for line in lines:
                    entry = parse_vimgrep(line)
                    if entry is None:
                        continue
                    if dedupe:
                        key = (entry.filename, entry.lnum)
                        if key in seen:
                            continue
                        seen.add(key)
                    batch.append(Candidate(value=entry, display=line))
                if batch:
                    yield batch

    return DynamicSource(fetch=fetch, narrows_on_extension=fixed_strings, name="grep")
