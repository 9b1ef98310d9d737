"""Structural checks layered on top of the token stream.

The highlighters and formatters never validate nesting. This module does,
for callers that want to report problems: unmatched environments, math
that is opened and never closed, and backslash sequences LaTeX rejects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from untex.lexer import Lexer
from untex.tokens import Span, SpannedToken, TokenKind


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Issue:
    """A structural problem found at *span*."""

    severity: Severity
    message: str
    span: Span


_MATH_CLOSERS = {
    TokenKind.DOLLAR_SIGN: TokenKind.DOLLAR_SIGN,
    TokenKind.DOUBLE_DOLLAR_SIGN: TokenKind.DOUBLE_DOLLAR_SIGN,
    TokenKind.INLINE_MATH_OPEN: TokenKind.INLINE_MATH_CLOSE,
    TokenKind.DISPLAY_MATH_OPEN: TokenKind.DISPLAY_MATH_CLOSE,
}

_STRAY_CLOSERS = frozenset({TokenKind.INLINE_MATH_CLOSE, TokenKind.DISPLAY_MATH_CLOSE})

# Control symbols LaTeX defines (accents, discretionary hyphen, italic
# correction, control space...). Any other backslash + non-letter is flagged.
_CONTROL_SYMBOLS = frozenset("'\"`^~=.-/@|<>+*\n\r\t")


def check(source: str) -> list[Issue]:
    """Return the structural issues of *source*, ordered by position."""
    issues: list[Issue] = []
    environments: list[SpannedToken] = []
    math_open: SpannedToken | None = None

    for spanned in Lexer(source):
        token, span = spanned
        kind = token.kind

        if math_open is not None:
            if kind is _MATH_CLOSERS[math_open.kind]:
                math_open = None
                continue
        elif kind in _MATH_CLOSERS:
            math_open = spanned
            continue
        elif kind in _STRAY_CLOSERS:
            issues.append(
                Issue(
                    Severity.ERROR,
                    f"'{span.slice(source)}' closes math that was never opened",
                    span,
                )
            )
            continue

        if kind is TokenKind.ENVIRONMENT_BEGIN:
            environments.append(spanned)
        elif kind is TokenKind.ENVIRONMENT_END:
            if not environments:
                issues.append(
                    Issue(Severity.ERROR, f"\\end{{{token.value}}} has no matching \\begin", span)
                )
            else:
                opened = environments.pop()
                if opened.token.value != token.value:
                    issues.append(
                        Issue(
                            Severity.ERROR,
                            f"\\end{{{token.value}}} does not match "
                            f"\\begin{{{opened.token.value}}}",
                            span,
                        )
                    )
        elif kind is TokenKind.INVALID_COMMAND:
            symbol = span.slice(source)[1:]
            if symbol not in _CONTROL_SYMBOLS:
                issues.append(Issue(Severity.WARNING, f"unknown control symbol '\\{symbol}'", span))

    if math_open is not None:
        delimiter = math_open.span.slice(source)
        message = f"math opened with '{delimiter}' is never closed"
        issues.append(Issue(Severity.ERROR, message, math_open.span))
    for opened in environments:
        issues.append(
            Issue(Severity.ERROR, f"\\begin{{{opened.token.value}}} is never closed", opened.span)
        )

    issues.sort(key=lambda issue: issue.span.start)
    return issues


def has_errors(issues: list[Issue]) -> bool:
    return any(issue.severity is Severity.ERROR for issue in issues)
