import logging

import lsprotocol.types as lsp

from ...grammar import DiagnosticSeverity, GrammarDiagnostic
from .. import GrammarLanguageServer
from ..documents import GrammarDocument
from .helpers import node_location_to_range

SEVERITIES = {
    DiagnosticSeverity.ERROR: lsp.DiagnosticSeverity.Error,
    DiagnosticSeverity.WARNING: lsp.DiagnosticSeverity.Warning,
}


def grammar_diagnostic_to_lsp_diag(diagnostic: GrammarDiagnostic, source: str) -> lsp.Diagnostic:
    return lsp.Diagnostic(
        range=node_location_to_range([diagnostic.location, diagnostic.end_location]),
        message=diagnostic.message,
        severity=SEVERITIES[diagnostic.severity],
        code=diagnostic.code.value,
        source=source,
    )


def publish_diagnostics(ls: GrammarLanguageServer):
    """Send the diagnostics of every tracked document that was compiled."""
    grammar = ls.documents.grammar

    for document in ls.documents.all():
        if grammar.get_source_file(document.filename) is None:
            continue

        diagnostics = [
            grammar_diagnostic_to_lsp_diag(d, type(ls).__name__)
            for d in grammar.diagnostics_for(document.filename)
        ]

        logging.debug(f"Sending {len(diagnostics)} diagnostic(s) for {document.uri}")
        ls.publish_diagnostics(document.uri, diagnostics)


def clear_diagnostics(ls: GrammarLanguageServer, document: GrammarDocument):
    logging.debug(f"Clearing diagnostics for {document.uri}")
    ls.publish_diagnostics(document.uri, [])
