from pathlib import Path

import pytest
from lsprotocol import types as lsp

from ..__main__ import create_server
from ..server import GrammarLanguageServer
from ..server.features.definition import get_definition
from ..server.features.references import get_references
from ..server.features.rename import rename_production
from ..server.host import FileHost
from .test_documents import change_params, close_params, open_params


@pytest.fixture
def published():
    return []


@pytest.fixture
def ls(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, published: list):
    server = create_server(host=FileHost(tmp_path))
    monkeypatch.setattr(
        server,
        "publish_diagnostics",
        lambda uri, diagnostics, *args, **kwargs: published.append((uri, diagnostics)),
    )
    return server


@pytest.fixture
def project(tmp_path: Path, ls: GrammarLanguageServer):
    (tmp_path / "dep.grammar").write_text("Dep := 'd';")
    main_uri = (tmp_path / "main.grammar").as_uri()

    ls.documents.handle_open_client_document(
        open_params(main_uri, '@import "dep.grammar";\nMain := Dep;')
    )

    return main_uri, (tmp_path / "dep.grammar").as_uri()


def latest(published: list, uri: str) -> list[lsp.Diagnostic]:
    return [diagnostics for target, diagnostics in published if target == uri][-1]


def test_publish_diagnostics_on_update(ls: GrammarLanguageServer, published: list, tmp_path: Path):
    uri = (tmp_path / "a.grammar").as_uri()

    ls.documents.handle_open_client_document(open_params(uri, "X := Y;"))

    diagnostics = latest(published, uri)
    assert len(diagnostics) == 1
    assert diagnostics[0].code == 2002
    assert diagnostics[0].severity == lsp.DiagnosticSeverity.Error
    assert diagnostics[0].range == lsp.Range(
        start=lsp.Position(line=0, character=5),
        end=lsp.Position(line=0, character=6),
    )

    ls.documents.handle_update_client_document(change_params(uri, "X := 'y';"))
    assert latest(published, uri) == []


def test_clear_diagnostics_on_close(ls: GrammarLanguageServer, published: list, tmp_path: Path):
    uri = (tmp_path / "a.grammar").as_uri()

    ls.documents.handle_open_client_document(open_params(uri, "X := ;"))
    assert len(latest(published, uri)) == 1

    ls.documents.handle_close_client_document(close_params(uri))
    assert latest(published, uri) == []
    assert not ls.documents.has(uri)


def test_batched_changes_publish_once(ls: GrammarLanguageServer, published: list, tmp_path: Path):
    uri = (tmp_path / "b.grammar").as_uri()

    with ls.documents.updates.suspended():
        ls.documents.handle_open_client_document(open_params(uri, "B := C;"))
        ls.documents.handle_update_client_document(change_params(uri, "B := D;"))
        ls.documents.handle_update_client_document(change_params(uri, "B := 'b';"))
        assert published == []

    assert published == [(uri, [])]


def test_stale_dependency_does_not_publish_twice(
    ls: GrammarLanguageServer, published: list, tmp_path: Path
):
    (tmp_path / "stale.grammar").write_text("Stale := 's';")
    stale_uri = (tmp_path / "stale.grammar").as_uri()
    uri = (tmp_path / "b.grammar").as_uri()

    with ls.documents.updates.suspended():
        ls.documents.open(str(tmp_path / "stale.grammar"))
        ls.documents.handle_open_client_document(open_params(uri, "B := C;"))
        ls.documents.handle_update_client_document(change_params(uri, "B := 'b';"))

    # The sweep clears the stale document, then a single round for the rest
    assert published == [(stale_uri, []), (uri, [])]
    assert not ls.documents.has(stale_uri)


def test_dependencies_get_diagnostics(ls: GrammarLanguageServer, published: list, project):
    _, dep_uri = project

    assert latest(published, dep_uri) == []


def test_definition(ls: GrammarLanguageServer, project):
    main_uri, dep_uri = project

    locations = get_definition(
        ls,
        lsp.DefinitionParams(
            text_document=lsp.TextDocumentIdentifier(uri=main_uri),
            position=lsp.Position(line=1, character=8),
        ),
    )

    assert locations == [
        lsp.Location(
            uri=dep_uri,
            range=lsp.Range(
                start=lsp.Position(line=0, character=0),
                end=lsp.Position(line=0, character=3),
            ),
        )
    ]


def test_references(ls: GrammarLanguageServer, project):
    main_uri, dep_uri = project

    def find(include_declaration: bool):
        return get_references(
            ls,
            lsp.ReferenceParams(
                text_document=lsp.TextDocumentIdentifier(uri=main_uri),
                position=lsp.Position(line=1, character=9),
                context=lsp.ReferenceContext(include_declaration=include_declaration),
            ),
        )

    assert [location.uri for location in find(True)] == [dep_uri, main_uri]

    references = find(False)
    assert [location.uri for location in references] == [main_uri]
    assert references[0].range.start == lsp.Position(line=1, character=8)


def test_rename(ls: GrammarLanguageServer, project):
    main_uri, dep_uri = project

    edit = rename_production(
        ls,
        lsp.RenameParams(
            text_document=lsp.TextDocumentIdentifier(uri=main_uri),
            position=lsp.Position(line=1, character=8),
            new_name="Dependency",
        ),
    )

    assert edit is not None
    assert set(edit.changes) == {main_uri, dep_uri}
    assert all(
        [e.new_text for e in edits] == ["Dependency"] for edits in edit.changes.values()
    )


def test_requests_for_untracked_documents(ls: GrammarLanguageServer, tmp_path: Path):
    identifier = lsp.TextDocumentIdentifier(uri=(tmp_path / "nope.grammar").as_uri())
    position = lsp.Position(line=0, character=0)

    assert get_definition(ls, lsp.DefinitionParams(text_document=identifier, position=position)) == []
    assert (
        get_references(
            ls,
            lsp.ReferenceParams(
                text_document=identifier,
                position=position,
                context=lsp.ReferenceContext(include_declaration=True),
            ),
        )
        == []
    )
    assert (
        rename_production(
            ls,
            lsp.RenameParams(text_document=identifier, position=position, new_name="X"),
        )
        is None
    )


def test_shutdown_releases_documents(ls: GrammarLanguageServer, project, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("pygls.server.Server.shutdown", lambda self: None)

    ls.shutdown()

    assert ls.documents.keys() == []
