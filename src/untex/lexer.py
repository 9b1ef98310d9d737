"""LaTeX lexer: splits source text into a lazy stream of spanned tokens.

Every rule is a compiled pattern tried at the current offset. The longest
match wins; equal lengths are settled by the rule priority, so literal
lexemes such as ``\\documentclass`` or ``$$`` beat the generic patterns they
overlap with. Input that no rule matches becomes a one-character
``OTHER`` token, so the lexer never fails and never skips a character.
"""

from __future__ import annotations

import re
import string
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from untex.tokens import Span, SpannedToken, Token, TokenKind

# Literal lexemes beat patterns of the same length; the catch-all for
# backslash sequences loses to everything.
_LITERAL = 2
_PATTERN = 1
_CATCH_ALL = 0


@dataclass(frozen=True, slots=True)
class _Rule:
    kind: TokenKind
    pattern: re.Pattern[str]
    priority: int
    first: str  # characters a match can start with
    payload: Callable[[str], str] | None = None


def _literal(kind: TokenKind, *lexemes: str) -> list[_Rule]:
    return [_Rule(kind, re.compile(re.escape(lx)), _LITERAL, lx[0]) for lx in lexemes]


def _pattern(
    kind: TokenKind,
    regex: str,
    first: str,
    priority: int = _PATTERN,
    payload: Callable[[str], str] | None = None,
) -> list[_Rule]:
    return [_Rule(kind, re.compile(regex), priority, first, payload)]


def _environment_begin(lexeme: str) -> str:
    return lexeme[len("\\begin{") : -1]


def _environment_end(lexeme: str) -> str:
    return lexeme[len("\\end{") : -1]


_RULES: list[_Rule] = [
    *_literal(TokenKind.AND, "&"),
    *_literal(TokenKind.ASTERIX, "*"),
    *_literal(TokenKind.AT, "@"),
    *_literal(TokenKind.BRACE_OPEN, "{"),
    *_literal(TokenKind.BRACE_CLOSE, "}"),
    *_literal(TokenKind.BRACKET_CLOSE, "]"),
    *_literal(TokenKind.BRACKET_OPEN, "["),
    *_literal(TokenKind.COLON, ":"),
    *_literal(TokenKind.COMMA, ","),
    *_pattern(TokenKind.COMMAND_NAME, r"\\[a-zA-Z]+", "\\"),
    *_pattern(TokenKind.COMMENT, r"%[^\r\n]*", "%"),
    *_literal(TokenKind.DISPLAY_MATH_CLOSE, "\\]"),
    *_literal(TokenKind.DISPLAY_MATH_OPEN, "\\["),
    *_literal(TokenKind.DOCUMENT_CLASS, "\\documentclass"),
    *_literal(TokenKind.DOLLAR_SIGN, "$"),
    *_literal(TokenKind.DOT, "."),
    *_literal(TokenKind.DOUBLE_BACKSLASH, "\\\\"),
    *_literal(TokenKind.DOUBLE_DOLLAR_SIGN, "$$"),
    *_pattern(
        TokenKind.ENVIRONMENT_BEGIN,
        r"\\begin\{[a-zA-Z]+\*?\}",
        "\\",
        payload=_environment_begin,
    ),
    *_pattern(
        TokenKind.ENVIRONMENT_END,
        r"\\end\{[a-zA-Z]+\*?\}",
        "\\",
        payload=_environment_end,
    ),
    *_literal(TokenKind.EQUAL_SIGN, "="),
    *_literal(TokenKind.ESCAPED_CHAR, "\\{", "\\}", "\\_", "\\$", "\\&", "\\%", "\\#"),
    *_literal(TokenKind.EXCLAMATION_MARK, "!"),
    *_literal(TokenKind.HASH, "#"),
    *_literal(TokenKind.HAT, "^"),
    *_literal(TokenKind.HYPHEN, "-"),
    *_literal(TokenKind.INLINE_MATH_CLOSE, "\\)"),
    *_literal(TokenKind.INLINE_MATH_OPEN, "\\("),
    *_literal(TokenKind.INSERT_SPACE, "\\,", "\\:", "\\;", "\\!", "\\ "),
    *_pattern(TokenKind.INVALID_COMMAND, r"\\[^a-zA-Z]", "\\", priority=_CATCH_ALL),
    *_literal(TokenKind.NEWLINE, "\n", "\r\n"),
    *_pattern(TokenKind.NUMBER, r"[0-9]+", string.digits),
    *_literal(TokenKind.PAREN_CLOSE, ")"),
    *_literal(TokenKind.PAREN_OPEN, "("),
    *_literal(TokenKind.PLUS_SIGN, "+"),
    *_literal(TokenKind.QUESTION_MARK, "?"),
    *_literal(TokenKind.SEMICOLON, ";"),
    *_pattern(TokenKind.TABS_OR_SPACES, r"[ \t]+", " \t"),
    *_literal(TokenKind.TILDE, "~"),
    *_literal(TokenKind.UNDERSCORE, "_"),
    *_pattern(TokenKind.WORD, r"[a-zA-Z]+", string.ascii_letters),
]


def _index_rules(rules: list[_Rule]) -> dict[str, tuple[_Rule, ...]]:
    """Group rules by the characters their matches can start with."""
    index: dict[str, list[_Rule]] = {}
    for rule in rules:
        for ch in rule.first:
            index.setdefault(ch, []).append(rule)
    return {ch: tuple(group) for ch, group in index.items()}


_RULES_BY_FIRST_CHAR = _index_rules(_RULES)


class Lexer:
    """Iterate over the spanned tokens of a LaTeX source string.

    The lexer is lazy and single-pass: each call to ``next()`` classifies
    exactly one token, starting where the previous one ended.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._pos = 0

    @property
    def source(self) -> str:
        return self._source

    def __iter__(self) -> Iterator[SpannedToken]:
        return self

    def __next__(self) -> SpannedToken:
        start = self._pos
        if start >= len(self._source):
            raise StopIteration

        best: _Rule | None = None
        best_end = start
        for rule in _RULES_BY_FIRST_CHAR.get(self._source[start], ()):
            m = rule.pattern.match(self._source, start)
            if m is None or m.end() == start:
                continue
            end = m.end()
            if best is None or end > best_end:
                best = rule
                best_end = end
            elif end == best_end and rule.priority > best.priority:
                best = rule
                best_end = end

        if best is None:
            self._pos = start + 1
            return SpannedToken(Token(TokenKind.OTHER), Span(start, start + 1))

        self._pos = best_end
        value = None
        if best.payload is not None:
            value = best.payload(self._source[start:best_end])
        return SpannedToken(Token(best.kind, value), Span(start, best_end))


def tokenize(source: str) -> list[SpannedToken]:
    """Convenience function: tokenize source text and return the token list."""
    return list(Lexer(source))
