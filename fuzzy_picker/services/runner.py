"""ProcessRunner: stream output lines from external tools.

Wraps asyncio subprocesses so that sources can yield candidate batches
as output arrives, without blocking the event loop.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import shutil
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Callable

from ..models.exceptions import FetchFailedError, SourceUnavailableError

logger = logging.getLogger(__name__)


class LineBuffer:
    """Splits decoded output chunks into complete lines.

    A partial trailing line is held back until the next chunk or until
    finish(). Empty lines are dropped.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return the lines it completed."""
        text = self._pending + self._decoder.decode(chunk)
        parts = text.split("\n")
        self._pending = parts.pop()
        return [line.rstrip("\r") for line in parts if line.rstrip("\r")]

    def finish(self) -> list[str]:
        """Flush whatever is left at end of stream."""
        tail = (self._pending + self._decoder.decode(b"", final=True)).rstrip("\r")
        self._pending = ""
        return [tail] if tail else []


# Reapers for killed processes, held until the child has been waited on
_reaping: set[asyncio.Future] = set()


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill a process if it is still running and reap it in the background."""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass  # Already gone
    except OSError as e:
        logger.debug(f"Failed to kill process {proc.pid}: {e}")
    reaper = asyncio.ensure_future(proc.wait())
    _reaping.add(reaper)
    reaper.add_done_callback(_reaping.discard)


async def wait_reaped(timeout: float | None = None) -> None:
    """Wait until every killed process has exited."""
    if _reaping:
        await asyncio.wait(set(_reaping), timeout=timeout)


class ProcessRunner:
    """Low-level process execution. No picker logic."""

    READ_CHUNK = 64 * 1024

    def __init__(self, which: Callable[[str], str | None] = shutil.which) -> None:
        self._which = which

    def is_available(self, executable: str) -> bool:
        """Check if an executable is on PATH."""
        return self._which(executable) is not None

    async def stream_lines(
        self,
        cmd: Sequence[str],
        cwd: Path | None = None,
        ok_codes: Sequence[int] = (0,),
    ) -> AsyncIterator[list[str]]:
        """Run a command and yield its stdout lines in batches.

        One batch is yielded per chunk read from the pipe. The process is
        killed if the consumer stops early or is cancelled.

        Raises:
            SourceUnavailableError: the command could not be started
            FetchFailedError: the command exited with a status not in ok_codes
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
            )
        except OSError as e:
            raise SourceUnavailableError(f"failed to start command: {cmd[0]}: {e}") from e

        logger.debug(f"Started {cmd[0]} (pid {proc.pid})")
        stderr_task = asyncio.ensure_future(proc.stderr.read())
        buffer = LineBuffer()

        try:
            while True:
                chunk = await proc.stdout.read(self.READ_CHUNK)
                if not chunk:
                    break
                lines = buffer.feed(chunk)
                if lines:
                    yield lines

            tail = buffer.finish()
            if tail:
                yield tail

            code = await proc.wait()
            stderr = (await stderr_task).decode(errors="replace").strip()
            if code not in ok_codes:
                message = stderr or f"{cmd[0]} exited with status {code}"
                raise FetchFailedError(message, status=code)
        finally:
            if not stderr_task.done():
                stderr_task.cancel()
            _kill(proc)
