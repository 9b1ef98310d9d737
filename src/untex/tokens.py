"""Token kinds, spans, and the token value types shared by every pass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class TokenKind(Enum):
    """Every kind of token the lexer can produce.

    Values are the kebab-case names accepted on the command line.
    """

    AND = "and"  # &
    ASTERIX = "asterix"  # *
    AT = "at"  # @
    BRACE_OPEN = "brace-open"  # {
    BRACE_CLOSE = "brace-close"  # }
    BRACKET_CLOSE = "bracket-close"  # ]
    BRACKET_OPEN = "bracket-open"  # [
    COLON = "colon"  # :
    COMMA = "comma"  # ,
    COMMAND_NAME = "command-name"  # \name
    COMMENT = "comment"  # % to end of line
    DISPLAY_MATH_CLOSE = "display-math-close"  # \]
    DISPLAY_MATH_OPEN = "display-math-open"  # \[
    DOCUMENT_CLASS = "document-class"  # \documentclass
    DOLLAR_SIGN = "dollar-sign"  # $
    DOT = "dot"  # .
    DOUBLE_BACKSLASH = "double-backslash"  # \\
    DOUBLE_DOLLAR_SIGN = "double-dollar-sign"  # $$
    ENVIRONMENT_BEGIN = "environment-begin"  # \begin{name}: value is name
    ENVIRONMENT_END = "environment-end"  # \end{name}: value is name
    EQUAL_SIGN = "equal-sign"  # =
    ESCAPED_CHAR = "escaped-char"  # \{ \} \_ \$ \& \% \#
    EXCLAMATION_MARK = "exclamation-mark"  # !
    HASH = "hash"  # #
    HAT = "hat"  # ^
    HYPHEN = "hyphen"  # -
    MINUS_SIGN = "hyphen"  # alias of HYPHEN, for math mode
    INLINE_MATH_CLOSE = "inline-math-close"  # \)
    INLINE_MATH_OPEN = "inline-math-open"  # \(
    INSERT_SPACE = "insert-space"  # \, \: \; \! and backslash-space
    INVALID_COMMAND = "invalid-command"  # \ followed by any other non-letter
    NEWLINE = "newline"  # \n or \r\n
    NUMBER = "number"  # [0-9]+
    OTHER = "other"  # fallback, one character
    OWNED_STRING = "owned-string"  # synthetic text: value is the text
    PAREN_CLOSE = "paren-close"  # )
    PAREN_OPEN = "paren-open"  # (
    PLUS_SIGN = "plus-sign"  # +
    QUESTION_MARK = "question-mark"  # ?
    SEMICOLON = "semicolon"  # ;
    TABS_OR_SPACES = "tabs-or-spaces"  # [ \t]+
    TILDE = "tilde"  # ~
    UNDERSCORE = "underscore"  # _
    WORD = "word"  # [a-zA-Z]+


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open range ``[start, end)`` of offsets into the source text."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def slice(self, source: str) -> str:
        return source[self.start : self.end]


@dataclass(frozen=True, slots=True)
class Token:
    """A classified lexeme.

    ``value`` carries the environment name for environment tokens and the
    generated text for owned strings; it is ``None`` for every other kind.
    """

    kind: TokenKind
    value: str | None = None

    @classmethod
    def owned(cls, text: str) -> Token:
        """Return a synthetic token whose text is not backed by the source."""
        return cls(TokenKind.OWNED_STRING, text)

    @classmethod
    def begin(cls, name: str) -> Token:
        return cls(TokenKind.ENVIRONMENT_BEGIN, name)

    @classmethod
    def end(cls, name: str) -> Token:
        return cls(TokenKind.ENVIRONMENT_END, name)

    @property
    def is_owned(self) -> bool:
        return self.kind is TokenKind.OWNED_STRING

    def is_begin(self, name: str) -> bool:
        return self.kind is TokenKind.ENVIRONMENT_BEGIN and self.value == name

    def is_end(self, name: str) -> bool:
        return self.kind is TokenKind.ENVIRONMENT_END and self.value == name


class SpannedToken(NamedTuple):
    """A token paired with the span of source text it was read from."""

    token: Token
    span: Span

    @property
    def kind(self) -> TokenKind:
        return self.token.kind


# Environments whose body is typeset in display math mode.
MATH_ENVIRONMENTS = frozenset({"equation", "equation*", "align", "align*"})


def locate(source: str, offset: int) -> Position:
    """Return the 1-based line and column of *offset* in *source*."""
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return Position(line, offset - line_start + 1, offset)


def byte_offsets(source: str, encoding: str = "utf-8") -> list[int]:
    """Return the encoded byte offset of every str offset of *source*.

    The list has ``len(source) + 1`` entries, so span ends map too.
    """
    if source.isascii():
        return list(range(len(source) + 1))
    offsets = [0]
    total = 0
    for ch in source:
        total += len(ch.encode(encoding))
        offsets.append(total)
    return offsets
