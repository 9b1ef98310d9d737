"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from untex.lexer import tokenize
from untex.tokens import SpannedToken, TokenKind

SAMPLE_DOCUMENT = r"""
\documentclass{article}
\usepackage{tikz}

\begin{document}
    \begin{tikzpicture}[scale=1.5]
        \draw[thick,fill=gray!60] (0,0) rectangle (1,1);
    \end{tikzpicture}
\end{document}
"""


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns the token list."""

    def _lex(source: str) -> list[SpannedToken]:
        return tokenize(source)

    return _lex


def kinds(tokens: list[SpannedToken]) -> list[TokenKind]:
    return [spanned.kind for spanned in tokens]


def assert_kinds(tokens: list[SpannedToken], expected: list[TokenKind]) -> None:
    """Assert that the token kinds match the expected list."""
    actual = kinds(tokens)
    assert actual == expected, f"Expected {expected}, got {actual}"


def positions(source: str, kind: TokenKind) -> list[tuple[int, int]]:
    """Return the ``(start, end)`` of every token of *kind* in *source*."""
    return [
        (spanned.span.start, spanned.span.end)
        for spanned in tokenize(source)
        if spanned.kind is kind
    ]


def highlighted_text(pairs, source: str) -> list[str]:
    """Return the source text of every highlighted token."""
    return [spanned.span.slice(source) for highlighted, spanned in pairs if highlighted]
