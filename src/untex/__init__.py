"""UnTeX: LaTeX tokenizer, highlighters and formatter."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from untex.tokens import SpannedToken

__version__ = "0.4.0"


def tokenize(source: str) -> list[SpannedToken]:
    """Split LaTeX source into spanned tokens."""
    from untex.lexer import tokenize as _tokenize

    return _tokenize(source)


def reformat(source: str, indent_width: int = 2, strip_comments: bool = False) -> str:
    """Re-indent LaTeX source by environment nesting."""
    from untex.format import format_source

    return format_source(source, indent_width=indent_width, strip_comments=strip_comments)
