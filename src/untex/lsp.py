"""Minimal LSP server for LaTeX: structural diagnostics and re-indenting."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_FORMATTING,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentFormattingParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
    TextEdit,
)
from pygls.lsp.server import LanguageServer

from untex import __version__
from untex.check import Issue, Severity, check
from untex.format import format_source
from untex.tokens import locate

server = LanguageServer("untex-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)

_SEVERITIES = {
    Severity.ERROR: DiagnosticSeverity.Error,
    Severity.WARNING: DiagnosticSeverity.Warning,
}


def _position(source: str, offset: int) -> Position:
    """Convert a str offset to an LSP position, counting UTF-16 code units."""
    pos = locate(source, offset)
    prefix = source[pos.offset - pos.column + 1 : pos.offset]
    return Position(line=pos.line - 1, character=len(prefix.encode("utf-16-le")) // 2)


def _diagnostic(issue: Issue, source: str) -> Diagnostic:
    return Diagnostic(
        range=Range(
            start=_position(source, issue.span.start),
            end=_position(source, issue.span.end),
        ),
        message=issue.message,
        severity=_SEVERITIES[issue.severity],
        source="untex",
    )


def _validate(ls: LanguageServer, uri: str) -> None:
    """Check the document and publish its diagnostics."""
    source = ls.workspace.get_text_document(uri).source
    diagnostics = [_diagnostic(issue, source) for issue in check(source)]
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


def _format_edits(source: str, indent_width: int = 2) -> list[TextEdit]:
    """Return one edit replacing the whole document, or none if unchanged."""
    formatted = format_source(source, indent_width=indent_width)
    if formatted == source:
        return []
    return [
        TextEdit(
            range=Range(start=Position(line=0, character=0), end=_position(source, len(source))),
            new_text=formatted,
        )
    ]


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_FORMATTING)
def formatting(ls: LanguageServer, params: DocumentFormattingParams) -> list[TextEdit]:
    source = ls.workspace.get_text_document(params.text_document.uri).source
    indent_width = params.options.tab_size if params.options.insert_spaces else 2
    return _format_edits(source, indent_width)


def main() -> None:
    server.start_io()
