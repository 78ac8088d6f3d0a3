"""Concordia Language Server Protocol implementation."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from .compiler import Compiler, CompilerDiagnostic
from .config import ServerConfig
from .providers import (
    completion_items,
    definition_location,
    hover_markdown,
    word_at,
)
from .resolver import Resolver
from .symbols import Definition

log = logging.getLogger(__name__)

server = LanguageServer('cnd-lsp', 'v0.1.0')
config = ServerConfig()

# Diagnostics span to the end of the reported line
_DIAGNOSTIC_END_COLUMN = 1000


def _resolve_document(uri: str) -> list[Definition]:
    """Resolve symbols for an open document using its unsaved text."""
    doc = server.workspace.get_text_document(uri)
    resolver = Resolver(max_depth=config.max_import_depth)
    return resolver.resolve(doc.path, doc.source)


def _line_text(uri: str, line: int) -> str:
    doc = server.workspace.get_text_document(uri)
    lines = doc.lines
    if 0 <= line < len(lines):
        return lines[line].rstrip('\r\n')
    return ''


def _compiler() -> Compiler:
    return Compiler(config.compiler_path, timeout=config.compiler_timeout)


def _to_lsp_diagnostic(diag: CompilerDiagnostic) -> lsp.Diagnostic:
    severity = (
        lsp.DiagnosticSeverity.Warning if diag.severity == 'warning'
        else lsp.DiagnosticSeverity.Error
    )
    return lsp.Diagnostic(
        range=lsp.Range(
            start=lsp.Position(line=diag.line, character=diag.column),
            end=lsp.Position(
                line=diag.line, character=_DIAGNOSTIC_END_COLUMN,
            ),
        ),
        message=diag.message,
        severity=severity,
        source='cnd',
    )


def _publish_diagnostics(uri: str) -> None:
    doc = server.workspace.get_text_document(uri)
    diagnostics = [_to_lsp_diagnostic(d) for d in _compiler().check(doc.path)]
    log.debug('%d diagnostics for %s', len(diagnostics), doc.path)
    server.text_document_publish_diagnostics(
        lsp.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(lsp.INITIALIZE)
def on_initialize(params: lsp.InitializeParams) -> None:
    global config
    config = config.with_options(params.initialization_options)
    log.info('Using compiler: %s', config.compiler_path)


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
@server.thread()
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    _publish_diagnostics(params.text_document.uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_SAVE)
@server.thread()
def did_save(params: lsp.DidSaveTextDocumentParams) -> None:
    # The compiler only sees the file on disk
    _publish_diagnostics(params.text_document.uri)


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    # Drop compiler diagnostics for the closed file
    server.text_document_publish_diagnostics(
        lsp.PublishDiagnosticsParams(
            uri=params.text_document.uri, diagnostics=[],
        )
    )


@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(trigger_characters=[':', '@', '.']),
)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    uri = params.text_document.uri
    line = _line_text(uri, params.position.line)
    prefix = line[:params.position.character]
    items = completion_items(prefix, lambda: _resolve_document(uri))
    return lsp.CompletionList(is_incomplete=False, items=items)


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> Optional[lsp.Hover]:
    uri = params.text_document.uri
    line = _line_text(uri, params.position.line)
    word = word_at(line, params.position.character)
    if word is None:
        return None

    value = hover_markdown(_resolve_document(uri), word)
    if value is None:
        return None
    return lsp.Hover(
        contents=lsp.MarkupContent(
            kind=lsp.MarkupKind.Markdown,
            value=value,
        ),
        range=lsp.Range(
            start=lsp.Position(line=params.position.line, character=word.start),
            end=lsp.Position(line=params.position.line, character=word.end),
        ),
    )


@server.feature(lsp.TEXT_DOCUMENT_DEFINITION)
def goto_definition(
    params: lsp.DefinitionParams,
) -> Optional[lsp.Location]:
    uri = params.text_document.uri
    line = _line_text(uri, params.position.line)
    word = word_at(line, params.position.character)
    if word is None:
        return None
    return definition_location(_resolve_document(uri), word)


@server.feature(lsp.TEXT_DOCUMENT_FORMATTING)
@server.thread()
def formatting(
    params: lsp.DocumentFormattingParams,
) -> Optional[list[lsp.TextEdit]]:
    doc = server.workspace.get_text_document(params.text_document.uri)
    log.info('Formatting document: %s', doc.path)
    formatted = _compiler().format(doc.path)
    if formatted is None:
        return []

    lines = doc.lines
    end = lsp.Position(line=len(lines), character=0)
    return [lsp.TextEdit(
        range=lsp.Range(start=lsp.Position(line=0, character=0), end=end),
        new_text=formatted,
    )]


def main() -> None:
    global config
    parser = argparse.ArgumentParser(description='Concordia LSP Server')
    parser.add_argument(
        '--stdio', action='store_true', default=True,
        help='Use stdio transport (default)',
    )
    parser.add_argument(
        '--log-file', type=str, default=None,
        help='Log to file',
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Enable verbose logging',
    )
    parser.add_argument(
        '--compiler', type=str, default=config.compiler_path,
        help='Path to the cnd compiler (default: %(default)s)',
    )
    parser.add_argument(
        '--max-import-depth', type=int, default=config.max_import_depth,
        help='Maximum @import nesting followed (default: %(default)s)',
    )
    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    if args.log_file:
        logging.basicConfig(
            filename=args.log_file, level=level,
            format='%(asctime)s %(name)s %(levelname)s: %(message)s',
        )
    else:
        logging.basicConfig(
            level=level,
            format='%(asctime)s %(name)s %(levelname)s: %(message)s',
        )

    config = ServerConfig(
        compiler_path=args.compiler,
        max_import_depth=args.max_import_depth,
    )
    server.start_io()


if __name__ == '__main__':
    main()
