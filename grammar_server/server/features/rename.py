from lsprotocol import types as lsp

from .. import GrammarLanguageServer
from .helpers import fetch_grammar, identifiers_to_locations


def rename_production(ls: GrammarLanguageServer, params: lsp.RenameParams):
    if not (result := fetch_grammar(ls, params)):
        return None

    document, grammar = result

    references = grammar.resolver.get_references(
        document.filename, params.position.line, params.position.character
    )

    if not references:
        return None

    changes: dict[str, list[lsp.TextEdit]] = {}

    for location in identifiers_to_locations(ls, references):
        changes.setdefault(location.uri, []).append(
            lsp.TextEdit(range=location.range, new_text=params.new_name)
        )

    return lsp.WorkspaceEdit(changes=changes)
