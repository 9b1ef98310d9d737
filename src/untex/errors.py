"""Error types raised outside the core, with formatted source context.

Lexing, highlighting and formatting never raise: unknown input becomes an
``other`` token and unbalanced structure is simply left open. Errors only
come from reading input, loading configuration, and the structural checker.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from untex.tokens import locate

if TYPE_CHECKING:
    from untex.check import Issue


class UntexError(Exception):
    """Base class for every error the command line reports."""

    def format(self, filename: str = "<stdin>") -> str:
        return f"error: {self}"


class InputError(UntexError):
    """A filename or directory given on the command line is unusable."""


class ConfigError(UntexError):
    """The configuration file cannot be read or holds an invalid value."""


class CheckError(UntexError):
    """A structural issue, with the source it was found in."""

    def __init__(self, issue: Issue, source: str) -> None:
        self.issue = issue
        self.source = source
        super().__init__(issue.message)

    def format(self, filename: str = "<stdin>") -> str:
        start = locate(self.source, self.issue.span.start)
        end = locate(self.source, self.issue.span.end)
        lines = self.source.splitlines(keepends=True)
        line_idx = start.line - 1
        col = start.column

        if 0 <= line_idx < len(lines):
            source_line = lines[line_idx].rstrip("\n").rstrip("\r")
        else:
            source_line = ""

        # Underline the full span when on one line, otherwise to end of line
        if end.line == start.line:
            underline_len = max(1, end.column - col)
        else:
            underline_len = max(1, len(source_line) - col + 1)

        pad = " " * (col - 1)
        carets = "^" * underline_len

        line_num = str(start.line)
        gutter_width = len(line_num) + 1

        blank_gutter = " " * gutter_width + "|"
        line_gutter = f"{line_num:>{gutter_width - 1}} |"

        return (
            f"{self.issue.severity.value}: {self.issue.message}\n"
            f"{' ' * gutter_width}--> {filename}:{start.line}:{col}\n"
            f"{blank_gutter}\n"
            f"{line_gutter} {source_line}\n"
            f"{blank_gutter} {pad}{carets}"
        )
