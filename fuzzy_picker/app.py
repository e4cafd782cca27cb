"""fuzzy-picker: interactive fuzzy search over files, grep results or lines.

Main Textual application and command-line entry point.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from textual.app import App

from fuzzy_picker.models.candidate import GrepMatch, Selection
from fuzzy_picker.models.exceptions import PickerError
from fuzzy_picker.screens.picker import PickerScreen
from fuzzy_picker.services.config import ConfigManager, PickerOptions
from fuzzy_picker.services.file_cache import FileListCache
from fuzzy_picker.services.runner import ProcessRunner
from fuzzy_picker.sources.base import Source, StaticSource
from fuzzy_picker.sources.files import files_source
from fuzzy_picker.sources.grep import grep_source
from fuzzy_picker.styles import BASE_CSS

logger = logging.getLogger(__name__)

MODES = ("files", "grep", "lines")
TTY_PATH = "/dev/tty"


@dataclass
class Services:
    """Application service container for dependency injection."""

    config: ConfigManager
    runner: ProcessRunner
    file_cache: FileListCache

    @classmethod
    def create(cls, config_dir: Path | None = None) -> "Services":
        """Wire up all services.

        Args:
            config_dir: Config directory (defaults to ~/.config/fuzzy-picker)
        """
        config = ConfigManager(config_dir=config_dir)
        return cls(
            config=config,
            runner=ProcessRunner(),
            file_cache=FileListCache(ttl_seconds=config.config.file_cache_ttl),
        )


@dataclass
class PickerRequest:
    """What to search, resolved from the command line."""

    source: Source
    options: PickerOptions
    initial_query: str = ""
    auto_select_single: bool = False


def build_request(
    services: Services,
    mode: str,
    args: list[str] | None = None,
    lines: list[str] | None = None,
    cwd: Path | None = None,
    query: str = "",
    all_matches: bool = False,
) -> PickerRequest:
    """Resolve a picker mode into a source and session options.

    Raises:
        ValueError: unknown mode
    """
    config = services.config.config
    extra = list(args or [])

    if mode == "files":
        source = files_source(
            services.runner,
            services.file_cache,
            config,
            extra_args=extra,
            cwd=cwd,
        )
        return PickerRequest(
            source=source,
            options=services.config.options(title="files"),
            initial_query=query,
            auto_select_single=config.open_single_result,
        )

    if mode == "grep":
        source = grep_source(
            services.runner,
            config,
            extra_args=extra,
            cwd=cwd,
            dedupe_lines=False if all_matches else None,
        )
        return PickerRequest(
            source=source,
            options=services.config.options(title="grep"),
            initial_query=query,
        )

    if mode == "lines":
        return PickerRequest(
            source=StaticSource.of(lines or []),
            options=services.config.options(title="lines"),
            initial_query=query,
        )

    raise ValueError(f"unknown mode: {mode}")


class FuzzyPickerApp(App[Selection | None]):
    """Runs a single picker and exits with the selection."""

    TITLE = "fuzzy picker"
    CSS = BASE_CSS
    ENABLE_COMMAND_PALETTE = False

    def __init__(self, request: PickerRequest, **kwargs):
        super().__init__(**kwargs)
        self.request = request

    def on_mount(self) -> None:
        self.push_screen(
            PickerScreen(
                self.request.source,
                options=self.request.options,
                initial_query=self.request.initial_query,
                auto_select_single=self.request.auto_select_single,
            ),
            callback=self.exit,
        )


def format_selection(selection: Selection) -> str:
    """Text printed for a confirmed selection."""
    value = selection.value
    if isinstance(value, GrepMatch):
        return f"{value.location}:{value.text}"
    return selection.candidate.display


def _read_lines(path: str) -> list[str]:
    if path == "-":
        return [line.rstrip("\n") for line in sys.stdin if line.strip()]
    text = Path(path).read_text(errors="replace")
    return [line for line in text.splitlines() if line.strip()]


def _attach_terminal(tty_path: str | None = None) -> None:
    """Point fd 0 back at the terminal once piped stdin has been read.

    Textual reads keys from file descriptor 0, which would otherwise be
    the drained pipe.

    Raises:
        PickerError: no terminal to read keys from
    """
    tty_path = tty_path or TTY_PATH
    try:
        fd = os.open(tty_path, os.O_RDONLY)
    except OSError as e:
        raise PickerError(
            f"cannot open {tty_path} for keyboard input: {e.strerror}",
            suggestion="run fuzzy-picker from an interactive terminal",
        ) from e
    try:
        os.dup2(fd, 0)
    finally:
        os.close(fd)
    logger.debug(f"Reattached stdin to {tty_path}")


def _load_lines(path: str) -> list[str]:
    """Read candidates for lines mode, reattaching the terminal after a pipe."""
    if path != "-":
        return _read_lines(path)
    if sys.stdin.isatty():
        raise PickerError(
            "lines: nothing piped on stdin",
            suggestion="pipe lines in or pass a file",
        )
    lines = _read_lines(path)
    _attach_terminal()
    return lines


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fuzzy-picker",
        description="Fuzzy search files, grep results or lines of text.",
    )
    parser.add_argument("mode", choices=MODES, help="what to search")
    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="extra fd/rg arguments (files, grep) or an input file (lines, default stdin)",
    )
    parser.add_argument("-q", "--query", default="", help="initial query")
    parser.add_argument("-C", "--cwd", type=Path, default=None, help="directory to search")
    parser.add_argument(
        "--all-matches",
        action="store_true",
        help="grep: list every match instead of one row per line",
    )
    parser.add_argument("--config-dir", type=Path, default=None, help="config directory")
    parser.add_argument("--log-file", type=Path, default=None, help="write debug logs here")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the fuzzy-picker application."""
    ns = parse_cli(argv)

    if ns.log_file:
        logging.basicConfig(
            filename=str(ns.log_file),
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    services = Services.create(config_dir=ns.config_dir)

    lines = None
    extra = ns.args
    if ns.mode == "lines":
        try:
            lines = _load_lines(extra[0] if extra else "-")
        except (OSError, PickerError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        extra = []

    request = build_request(
        services,
        ns.mode,
        args=extra,
        lines=lines,
        cwd=ns.cwd,
        query=ns.query,
        all_matches=ns.all_matches,
    )
    selection = FuzzyPickerApp(request).run()

    if selection is None:
        return 1
    print(format_selection(selection))
    return 0


if __name__ == "__main__":
    sys.exit(main())
