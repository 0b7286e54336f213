from typing import Any, Iterable

from lsprotocol import types as lsp
from tokenstream import SourceLocation

from ...grammar import Grammar, Identifier, Node
from .. import GrammarLanguageServer
from ..documents import GrammarDocument


def location_to_position(location: SourceLocation) -> lsp.Position:
    return lsp.Position(
        line=max(location.lineno - 1, 0),
        character=max(location.colno - 1, 0),
    )


def node_location_to_range(node: Node | Iterable[SourceLocation]):
    if isinstance(node, Node):
        location = node.location
        end_location = node.end_location
    else:
        location, end_location = node

    return lsp.Range(
        start=location_to_position(location), end=location_to_position(end_location)
    )


def fetch_grammar(
    ls: GrammarLanguageServer, params: Any
) -> tuple[GrammarDocument, Grammar] | None:
    """Find the tracked document of a request and the grammar it belongs to."""
    document = ls.documents.get(params.text_document)

    if document is None:
        return None

    grammar = ls.documents.grammar

    if grammar.get_source_file(document.filename) is None:
        return None

    return document, grammar


def get_document_uri(ls: GrammarLanguageServer, filename: str) -> str:
    if document := ls.documents.get(filename):
        return document.uri

    return ls.documents.normalize_uri(filename)


def identifiers_to_locations(
    ls: GrammarLanguageServer, identifiers: Iterable[Identifier]
) -> list[lsp.Location]:
    return [
        lsp.Location(
            uri=get_document_uri(ls, identifier.filename),
            range=node_location_to_range(identifier),
        )
        for identifier in identifiers
    ]
