from tokenstream import TokenStream

from ..grammar import (
    DiagnosticCode,
    DiagnosticSeverity,
    Empty,
    Grammar,
    GrammarOptions,
    Identifier,
    Terminal,
    parse_source_file,
)
from ..grammar.parser import TOKEN_PATTERNS, expect

MAIN = "/grammars/main.grammar"
DEP = "/grammars/dep.grammar"


def test_parse_productions():
    source_file = parse_source_file(MAIN, "X := 'a' | Y \"b\";\nY := [empty];")

    assert source_file.diagnostics == []
    assert [p.name.value for p in source_file.productions] == ["X", "Y"]

    first, second = source_file.productions[0].alternatives
    assert isinstance(first[0], Terminal) and first[0].value == "a"
    assert isinstance(second[0], Identifier) and second[0].value == "Y"
    assert isinstance(second[1], Terminal) and second[1].value == "b"
    assert isinstance(source_file.productions[1].alternatives[0][0], Empty)


def test_parse_imports_and_comments():
    source_file = parse_source_file(
        MAIN,
        """
// shared definitions
@import "dep.grammar";
Main := Dep; // trailing
""",
    )

    assert source_file.diagnostics == []
    assert [node.path for node in source_file.imports] == ["dep.grammar"]
    assert [p.name.value for p in source_file.productions] == ["Main"]


def test_recover_after_syntax_error():
    source_file = parse_source_file(MAIN, "X := ;\nY := 'y';")

    assert [p.name.value for p in source_file.productions] == ["Y"]
    assert len(source_file.diagnostics) == 1

    diagnostic = source_file.diagnostics[0]
    assert diagnostic.code is DiagnosticCode.SYNTAX_ERROR
    assert diagnostic.location.lineno == 1
    assert diagnostic.location.colno == 6


SYNTAX_ERRORS = [
    ["X := 'a'", "end of file"],
    ['@include "x.grammar";', "Unknown directive"],
    ["X = 'a';", "':='"],
    ["X := 'a' ? ;", "';'"],
]


def test_syntax_errors():
    for text, expected in SYNTAX_ERRORS:
        source_file = parse_source_file(MAIN, text)

        assert len(source_file.diagnostics) == 1, text
        assert expected in source_file.diagnostics[0].message, text


def test_identifier_at_position():
    source_file = parse_source_file(MAIN, "X := Y;")

    assert source_file.identifier_at(0, 0).value == "X"
    assert source_file.identifier_at(0, 5).value == "Y"
    assert source_file.identifier_at(0, 6).value == "Y"
    assert source_file.identifier_at(0, 3) is None
    assert source_file.identifier_at(1, 0) is None


def test_grammar_follows_imports():
    files = {
        MAIN: '@import "dep.grammar";\nMain := Dep;',
        DEP: "Dep := 'd';",
    }
    reads = []

    def read_file(filename):
        reads.append(filename)
        return files.get(filename)

    grammar = Grammar([MAIN], read_file=read_file)

    assert reads == [MAIN, DEP]
    assert [f.filename for f in grammar.source_files] == [MAIN, DEP]
    assert grammar.diagnostics_for(MAIN) == []
    assert grammar.diagnostics_for(DEP) == []


def test_import_cycle_reads_each_file_once():
    files = {
        MAIN: '@import "dep.grammar";\nMain := Dep;',
        DEP: '@import "main.grammar";\nDep := Main;',
    }
    reads = []

    def read_file(filename):
        reads.append(filename)
        return files.get(filename)

    Grammar([MAIN], read_file=read_file).check()

    assert reads == [MAIN, DEP]


def test_semantic_diagnostics():
    files = {
        MAIN: '@import "dep.grammar";\n@import "missing.grammar";\nMain := Dep Missing;',
        DEP: "Dep := 'd';\nDep := 'e';",
    }

    grammar = Grammar([MAIN], read_file=files.get)

    main_codes = [d.code for d in grammar.diagnostics_for(MAIN)]
    assert main_codes == [
        DiagnosticCode.CANNOT_READ_FILE,
        DiagnosticCode.CANNOT_FIND_PRODUCTION,
    ]

    dep_diagnostics = grammar.diagnostics_for(DEP)
    assert [d.code for d in dep_diagnostics] == [DiagnosticCode.DUPLICATE_PRODUCTION]
    assert dep_diagnostics[0].location.lineno == 2


def test_report_unused_productions():
    files = {MAIN: "Main := Used;\nUsed := 'u';"}

    quiet = Grammar([MAIN], read_file=files.get)
    assert quiet.diagnostics_for(MAIN) == []

    strict = Grammar([MAIN], GrammarOptions(report_unused=True), files.get)
    diagnostics = strict.diagnostics_for(MAIN)

    assert [d.code for d in diagnostics] == [DiagnosticCode.UNUSED_PRODUCTION]
    assert diagnostics[0].severity is DiagnosticSeverity.WARNING
    assert "Main" in diagnostics[0].message


def test_reuse_unchanged_source_files():
    files = {
        MAIN: '@import "dep.grammar";\nMain := Dep;',
        DEP: "Dep := 'd';",
    }

    first = Grammar([MAIN], read_file=files.get)

    files[MAIN] = '@import "dep.grammar";\nMain := Dep Dep;'
    second = Grammar([MAIN], read_file=files.get, old_grammar=first)

    assert second.get_source_file(DEP) is first.get_source_file(DEP)
    assert second.get_source_file(MAIN) is not first.get_source_file(MAIN)


def test_resolver():
    files = {
        MAIN: '@import "dep.grammar";\nMain := Dep;',
        DEP: "Dep := 'd';",
    }
    resolver = Grammar([MAIN], read_file=files.get).resolver

    declarations = resolver.get_declarations(MAIN, 1, 8)
    assert [(d.filename, d.value) for d in declarations] == [(DEP, "Dep")]

    references = resolver.get_references(DEP, 0, 0)
    assert [(r.filename, r.location.lineno) for r in references] == [(DEP, 1), (MAIN, 2)]

    references = resolver.get_references(DEP, 0, 0, include_declaration=False)
    assert [r.filename for r in references] == [MAIN]

    assert resolver.get_declarations(MAIN, 0, 0) == []
    assert resolver.get_references("/grammars/unknown.grammar", 0, 0) == []


def test_statements_starting_with_either_token_kind():
    stream = TokenStream('@import "dep.grammar";\nMain := Dep;')

    with stream.syntax(**TOKEN_PATTERNS):
        token = expect(stream, "directive", "identifier")

    assert token.match("directive")
    assert token.value == "@import"

    source_file = parse_source_file(MAIN, 'Main := Dep;\n@import "dep.grammar";')

    assert source_file.diagnostics == []
    assert [p.name.value for p in source_file.productions] == ["Main"]
    assert [node.path for node in source_file.imports] == ["dep.grammar"]
