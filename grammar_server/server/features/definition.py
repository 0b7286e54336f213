from lsprotocol import types as lsp

from .. import GrammarLanguageServer
from .helpers import fetch_grammar, identifiers_to_locations


def get_definition(ls: GrammarLanguageServer, params: lsp.DefinitionParams) -> list[lsp.Location]:
    if not (result := fetch_grammar(ls, params)):
        return []

    document, grammar = result

    declarations = grammar.resolver.get_declarations(
        document.filename, params.position.line, params.position.character
    )

    return identifiers_to_locations(ls, declarations)
