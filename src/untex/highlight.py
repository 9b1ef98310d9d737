"""Highlighters: annotate every token with whether it belongs to a region.

A highlighter wraps a stream of spanned tokens and yields one
``(highlighted, spanned_token)`` pair per input token, in the same order.
Nothing is added, dropped or reordered; filtering to the highlighted tokens
is a separate view (``highlight_spans`` and friends).

None of the state machines validate structure. Unbalanced delimiters leave
the machine in whatever state it reached when the stream ran out.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum
from typing import TextIO

from rich.color import ColorSystem

from untex.render import HighlightStyle, write_highlighted
from untex.tokens import MATH_ENVIRONMENTS, Span, SpannedToken, Token, TokenKind

HighlightedToken = tuple[bool, SpannedToken]


class HighlightedPart(Enum):
    """Regions of a document that can be highlighted."""

    MATH = "math"
    PREAMBLE = "preamble"
    DOCUMENT = "document"
    INLINE_MATH = "inline-math"
    DISPLAY_MATH = "display-math"


class Highlighter:
    """Base class: an iterator of ``(bool, SpannedToken)`` pairs.

    Subclasses implement ``_annotate``, which sees each token once, in order,
    and returns whether it is highlighted.
    """

    def __init__(self, tokens: Iterable[SpannedToken]) -> None:
        self._tokens = iter(tokens)

    def __iter__(self) -> Iterator[HighlightedToken]:
        return self

    def __next__(self) -> HighlightedToken:
        spanned = next(self._tokens)
        return self._annotate(spanned.token), spanned

    def _annotate(self, token: Token) -> bool:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Filtered views
    # ------------------------------------------------------------------

    def highlight_spans(self) -> Iterator[Span]:
        return (spanned.span for highlighted, spanned in self if highlighted)

    def highlight_tokens(self) -> Iterator[Token]:
        return (spanned.token for highlighted, spanned in self if highlighted)

    def highlight_spanned_tokens(self) -> Iterator[SpannedToken]:
        return (spanned for highlighted, spanned in self if highlighted)

    def write_colorized(
        self,
        source: str,
        sink: TextIO,
        style: HighlightStyle,
        color_system: ColorSystem | None = ColorSystem.STANDARD,
    ) -> None:
        """Write the remaining tokens to *sink*, styling highlighted ones."""
        write_highlighted(self, source, sink, style, color_system)


class TokenHighlighter(Highlighter):
    """Highlights every token of one kind. Holds no state."""

    def __init__(self, tokens: Iterable[SpannedToken], kind: TokenKind) -> None:
        super().__init__(tokens)
        self.kind = kind

    def _annotate(self, token: Token) -> bool:
        return token.kind is self.kind


class _DelimitedHighlighter(Highlighter):
    """Highlights from an opening token through its matching closer.

    Only the closer recorded when the region opened can end it; any other
    delimiter inside the region is ordinary content.
    """

    def __init__(self, tokens: Iterable[SpannedToken]) -> None:
        super().__init__(tokens)
        self._closer: Token | None = None

    @property
    def inside(self) -> bool:
        return self._closer is not None

    def _closer_for(self, token: Token) -> Token | None:
        raise NotImplementedError

    def _annotate(self, token: Token) -> bool:
        if self._closer is None:
            self._closer = self._closer_for(token)
            return self._closer is not None
        if token == self._closer:
            self._closer = None
        return True


_DISPLAY_CLOSERS = {
    TokenKind.DISPLAY_MATH_OPEN: Token(TokenKind.DISPLAY_MATH_CLOSE),
    TokenKind.DOUBLE_DOLLAR_SIGN: Token(TokenKind.DOUBLE_DOLLAR_SIGN),
}

_INLINE_CLOSERS = {
    TokenKind.DOLLAR_SIGN: Token(TokenKind.DOLLAR_SIGN),
    TokenKind.INLINE_MATH_OPEN: Token(TokenKind.INLINE_MATH_CLOSE),
}


def _display_closer(token: Token) -> Token | None:
    if token.kind is TokenKind.ENVIRONMENT_BEGIN and token.value in MATH_ENVIRONMENTS:
        return Token.end(token.value)
    return _DISPLAY_CLOSERS.get(token.kind)


class MathHighlighter(_DelimitedHighlighter):
    """Highlights inline and display math, delimiters included."""

    def _closer_for(self, token: Token) -> Token | None:
        closer = _INLINE_CLOSERS.get(token.kind)
        if closer is None:
            closer = _display_closer(token)
        return closer


class DisplayMathHighlighter(_DelimitedHighlighter):
    """Highlights ``\\[...\\]``, ``$$...$$`` and equation/align environments."""

    def _closer_for(self, token: Token) -> Token | None:
        return _display_closer(token)


class InlineMathHighlighter(_DelimitedHighlighter):
    """Highlights ``$...$`` and ``\\(...\\)``."""

    def _closer_for(self, token: Token) -> Token | None:
        return _INLINE_CLOSERS.get(token.kind)


class PreambleHighlighter(Highlighter):
    """Highlights from ``\\documentclass`` up to, not including, ``\\begin{document}``."""

    def __init__(self, tokens: Iterable[SpannedToken]) -> None:
        super().__init__(tokens)
        self.in_preamble = False

    def _annotate(self, token: Token) -> bool:
        if token.kind is TokenKind.DOCUMENT_CLASS:
            self.in_preamble = True
        elif token.is_begin("document"):
            self.in_preamble = False
        return self.in_preamble


class DocumentHighlighter(Highlighter):
    """Highlights the document environment, both delimiters included."""

    def __init__(self, tokens: Iterable[SpannedToken]) -> None:
        super().__init__(tokens)
        self.in_document = False

    def _annotate(self, token: Token) -> bool:
        if token.is_begin("document"):
            self.in_document = True
        elif token.is_end("document"):
            self.in_document = False
            return True
        return self.in_document


_PART_HIGHLIGHTERS: dict[HighlightedPart, type[Highlighter]] = {
    HighlightedPart.MATH: MathHighlighter,
    HighlightedPart.PREAMBLE: PreambleHighlighter,
    HighlightedPart.DOCUMENT: DocumentHighlighter,
    HighlightedPart.INLINE_MATH: InlineMathHighlighter,
    HighlightedPart.DISPLAY_MATH: DisplayMathHighlighter,
}


def make_highlighter(
    tokens: Iterable[SpannedToken],
    part: HighlightedPart = HighlightedPart.MATH,
    kind: TokenKind | None = None,
) -> Highlighter:
    """Build the highlighter for a token kind, or else for a document part."""
    if kind is not None:
        return TokenHighlighter(tokens, kind)
    return _PART_HIGHLIGHTERS[part](tokens)
