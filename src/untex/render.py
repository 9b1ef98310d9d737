"""Renderer: writes token streams back out as text.

Tokens only hold spans, so every write resolves the span against the
source it was lexed from. Owned strings are the one exception: their text
lives in the token and their span is a placeholder.
"""

from __future__ import annotations

import io
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TextIO

from rich.color import ColorSystem
from rich.style import Style

from untex.tokens import SpannedToken

# Named colors that have a "bright_" variant.
_STANDARD_COLORS = frozenset(
    {"black", "red", "green", "yellow", "blue", "magenta", "cyan", "white"}
)


@dataclass(frozen=True, slots=True)
class HighlightStyle:
    """Style applied around each highlighted token.

    Colors are anything ``rich`` can parse (names, ``#rrggbb``, ``color(n)``).
    ``intense`` switches a named foreground color to its bright variant.
    """

    fg: str | None = "red"
    bg: str | None = None
    bold: bool = False
    dimmed: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    intense: bool = False

    def to_rich(self) -> Style:
        fg = self.fg
        if self.intense and fg in _STANDARD_COLORS:
            fg = f"bright_{fg}"
        return Style(
            color=fg,
            bgcolor=self.bg,
            bold=self.bold or None,
            dim=self.dimmed or None,
            italic=self.italic or None,
            underline=self.underline or None,
            strike=self.strikethrough or None,
        )


def resolve(spanned: SpannedToken, source: str) -> str:
    """Return the text a token stands for."""
    token, span = spanned
    if token.is_owned:
        return token.value or ""
    return span.slice(source)


def write_tokens(tokens: Iterable[SpannedToken], source: str, sink: TextIO) -> None:
    """Write the text of every token, in order, to *sink*."""
    for spanned in tokens:
        sink.write(resolve(spanned, source))


def write_highlighted(
    pairs: Iterable[tuple[bool, SpannedToken]],
    source: str,
    sink: TextIO,
    style: HighlightStyle,
    color_system: ColorSystem | None = ColorSystem.STANDARD,
) -> None:
    """Write annotated tokens, styling each highlighted token on its own.

    Every highlighted token gets its own set/reset pair, so a run of
    highlighted tokens is written as a run of separately styled pieces.
    With ``color_system=None`` no escape sequences are written at all.
    """
    rich_style = style.to_rich()
    for highlighted, spanned in pairs:
        text = resolve(spanned, source)
        if highlighted:
            sink.write(rich_style.render(text, color_system=color_system))
        else:
            sink.write(text)


def render_tokens(tokens: Iterable[SpannedToken], source: str) -> str:
    """Return the concatenated text of *tokens*."""
    buf = io.StringIO()
    write_tokens(tokens, source, buf)
    return buf.getvalue()
