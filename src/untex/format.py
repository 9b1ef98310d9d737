"""Formatters: rewrite a token stream into a differently laid out one.

A formatter wraps a stream of spanned tokens and yields spanned tokens.
It may drop tokens, pass them through, or insert owned-string tokens whose
text is generated rather than read from the source.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TextIO

from untex.lexer import Lexer
from untex.render import render_tokens, write_tokens
from untex.tokens import Span, SpannedToken, Token, TokenKind


class Formatter:
    """Base class: an iterator of spanned tokens with output helpers."""

    def __init__(self, tokens: Iterable[SpannedToken]) -> None:
        self._tokens = iter(tokens)

    def __iter__(self) -> Iterator[SpannedToken]:
        return self

    def __next__(self) -> SpannedToken:
        raise NotImplementedError

    def write_formatted(self, source: str, sink: TextIO) -> None:
        """Write the remaining formatted tokens to *sink*."""
        write_tokens(self, source, sink)

    def to_string(self, source: str) -> str:
        return render_tokens(self, source)


class CommentStripper(Formatter):
    """Passes every token through except comments."""

    def __next__(self) -> SpannedToken:
        for spanned in self._tokens:
            if spanned.kind is not TokenKind.COMMENT:
                return spanned
        raise StopIteration


class AutoIndentFormatter(Formatter):
    """Re-indents every line by the nesting depth of environments.

    Leading tabs and spaces are replaced by ``indent_width * level`` spaces,
    one owned-string token per line, blank lines and the line after a final
    newline included. Inside the document environment each ``\\begin{...}``
    opens a level (``document`` included). An ``\\end{...}`` closes one only
    when it is the first token of its line, so a line lowers the level at
    most once. The level never drops below zero.
    """

    def __init__(self, tokens: Iterable[SpannedToken], indent_width: int = 2) -> None:
        super().__init__(tokens)
        self.indent_width = indent_width
        self.inside_document = False
        self.level = 0
        self._line_indented = False
        self._pending: SpannedToken | None = None
        self._offset = 0

    # ------------------------------------------------------------------
    # Lookahead
    # ------------------------------------------------------------------

    def _peek(self) -> SpannedToken | None:
        if self._pending is None:
            self._pending = next(self._tokens, None)
        return self._pending

    def _advance(self) -> SpannedToken | None:
        spanned = self._peek()
        self._pending = None
        if spanned is not None:
            self._offset = spanned.span.end
        return spanned

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def __next__(self) -> SpannedToken:
        if not self._line_indented:
            return self._indent_line()

        spanned = self._advance()
        if spanned is None:
            raise StopIteration

        token = spanned.token
        if token.kind is TokenKind.ENVIRONMENT_BEGIN:
            if token.value == "document":
                self.inside_document = True
            if self.inside_document:
                self.level += 1
        elif token.kind is TokenKind.NEWLINE:
            self._line_indented = False
        return spanned

    def _indent_line(self) -> SpannedToken:
        """Drop leading whitespace and return the line's indentation token."""
        while (peeked := self._peek()) is not None and peeked.kind is TokenKind.TABS_OR_SPACES:
            self._advance()

        if peeked is not None and peeked.kind is TokenKind.ENVIRONMENT_END:
            self.level = max(0, self.level - 1)

        self._line_indented = True
        at = peeked.span.start if peeked is not None else self._offset
        return SpannedToken(Token.owned(" " * (self.indent_width * self.level)), Span(at, at))


def format_source(source: str, *, indent_width: int = 2, strip_comments: bool = False) -> str:
    """Tokenize, optionally strip comments, and re-indent *source*."""
    tokens: Iterable[SpannedToken] = Lexer(source)
    if strip_comments:
        tokens = CommentStripper(tokens)
    return AutoIndentFormatter(tokens, indent_width).to_string(source)
