"""Argument and tool-output parsing.

Shell-like splitting for user-supplied tool arguments, and parsing of
vimgrep-format lines (file:line:col:text) from grep tools.
"""

from __future__ import annotations

import os
import re

from ..models.candidate import GrepMatch

# Escapes recognized after a backslash inside double quotes
_DQUOTE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t"}
_DQUOTE_ESCAPABLE = frozenset('"$`\\nrt')

VIMGREP_PATTERN = re.compile(r"^(.*?):(\d+):(\d+):(.*)$", re.DOTALL)
VIMGREP_NO_COL_PATTERN = re.compile(r"^(.*?):(\d+):(.*)$", re.DOTALL)


def parse_args(raw: str | None) -> list[str]:
    """Split a raw argument string with shell-like quoting.

    Single quotes are literal. Double quotes allow escaping of
    `"`, `$`, backtick and backslash, plus \\n, \\r and \\t. Outside quotes
    a backslash escapes the next character. Whitespace separates arguments.
    """
    if not raw:
        return []

    args: list[str] = []
    current: list[str] = []
    quote: str | None = None
    i = 0

    while i < len(raw):
        ch = raw[i]
        nxt = raw[i + 1] if i + 1 < len(raw) else ""

        if quote == "'":
            if ch == "'":
                quote = None
            else:
                current.append(ch)
        elif quote == '"':
            if ch == '"':
                quote = None
            elif ch == "\\" and nxt and nxt in _DQUOTE_ESCAPABLE:
                current.append(_DQUOTE_ESCAPES.get(nxt, nxt))
                i += 1
            else:
                current.append(ch)
        elif ch.isspace():
            if current:
                args.append("".join(current))
                current = []
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "\\" and nxt:
            current.append(nxt)
            i += 1
        else:
            current.append(ch)
        i += 1

    if current:
        args.append("".join(current))
    return args


def normalize_args(args: str | list[str] | None) -> list[str]:
    """Parse (if needed), expand leading ~ and drop empty arguments."""
    if args is None:
        return []
    items = parse_args(args) if isinstance(args, str) else list(args)
    return [
        os.path.expanduser(arg) if arg.startswith("~") else arg
        for arg in items
        if arg != ""
    ]


def parse_vimgrep(line: str) -> GrepMatch | None:
    """Parse a vimgrep line into a GrepMatch.

    Accepts `file:lnum:col:text`, falling back to `file:lnum:text` with
    column 1. Returns None for anything else.
    """
    match = VIMGREP_PATTERN.match(line)
    if match:
        filename, lnum, col, text = match.groups()
        return GrepMatch(filename=filename, lnum=int(lnum), col=int(col), text=text)

    match = VIMGREP_NO_COL_PATTERN.match(line)
    if match:
        filename, lnum, text = match.groups()
        return GrepMatch(filename=filename, lnum=int(lnum), col=1, text=text)

    return None
