"""Token stream dump, one token per line."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import TextIO

from untex.render import resolve
from untex.tokens import SpannedToken, TokenKind, locate

_NAMED = frozenset({TokenKind.ENVIRONMENT_BEGIN, TokenKind.ENVIRONMENT_END})


def dump_tokens(
    tokens: Iterable[SpannedToken], source: str, *, file: TextIO = sys.stderr
) -> None:
    """Print ``line:col  kind  text`` for every token to *file*."""
    for spanned in tokens:
        token, span = spanned
        pos = locate(source, span.start)
        line = f"{pos.line}:{pos.column}\t{token.kind.value}\t{resolve(spanned, source)!r}"
        if token.kind in _NAMED:
            line += f"\tname={token.value!r}"
        file.write(line + "\n")
