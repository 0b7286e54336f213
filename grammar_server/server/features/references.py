from lsprotocol import types as lsp

from .. import GrammarLanguageServer
from .helpers import fetch_grammar, identifiers_to_locations


def get_references(ls: GrammarLanguageServer, params: lsp.ReferenceParams) -> list[lsp.Location]:
    if not (result := fetch_grammar(ls, params)):
        return []

    document, grammar = result

    references = grammar.resolver.get_references(
        document.filename,
        params.position.line,
        params.position.character,
        include_declaration=params.context.include_declaration,
    )

    return identifiers_to_locations(ls, references)
