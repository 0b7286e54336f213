import logging
from dataclasses import dataclass
from typing import Any

from lsprotocol import types as lsp

from ..grammar import Grammar, GrammarOptions, SourceFile
from .batching import UpdateBatcher
from .events import DocumentEvents, Event
from .host import FileHost, FileWatcher, Locator, get_locator_uri, is_uri, locator_to_uri

__all__ = ["GrammarDocument", "DocumentManager"]


@dataclass(eq=False)
class GrammarDocument:
    """A tracked file, kept in the registry while either side holds it open."""

    filename: str
    uri: str = ""
    text: str | None = None
    is_open_on_client: bool = False
    is_open_on_server: bool = False

    # Only meaningful during a rebuild
    marked: bool = False

    @property
    def is_open(self) -> bool:
        return self.is_open_on_client or self.is_open_on_server


class DocumentManager:
    """Registry of grammar documents shared by the editor and the compiler.

    A document is open on the client while the editor has it open and open on
    the server while the compilation needs its content. It is removed as soon
    as neither side holds it. The compiled `Grammar` is dropped whenever the
    tracked content changes and rebuilt lazily from the client open documents.
    """

    sync_kind = lsp.TextDocumentSyncKind.Full

    def __init__(
        self,
        host: FileHost | None = None,
        options: GrammarOptions | None = None,
        watcher: FileWatcher | None = None,
    ):
        self.host = host or FileHost()
        self.options = options or GrammarOptions()
        self.watcher = watcher
        self.events = DocumentEvents()

        self._documents: dict[str, GrammarDocument] = {}
        self._root_names: list[str] | None = None
        self._grammar: Grammar | None = None
        self._previous_grammar: Grammar | None = None
        self._updates = UpdateBatcher(lambda: self.events.updated.fire(self))

    @property
    def root_names(self) -> list[str]:
        if self._root_names is None:
            return self._refresh_grammar().root_names

        return list(self._root_names)

    @property
    def grammar(self) -> Grammar:
        if self._grammar is None:
            return self._refresh_grammar()

        return self._grammar

    @property
    def source_files(self) -> list[SourceFile]:
        return self.grammar.source_files

    @property
    def updates(self) -> UpdateBatcher:
        return self._updates

    def get_source_file(self, locator: Locator) -> SourceFile | None:
        return self.grammar.get_source_file(self.normalize_filename(locator))

    def has(self, locator: Locator) -> bool:
        return self.get(locator) is not None

    def get(self, locator: Locator) -> GrammarDocument | None:
        return self._documents.get(self.normalize_filename(locator))

    def all(self) -> list[GrammarDocument]:
        return list(self._documents.values())

    def keys(self) -> list[str]:
        return list(self._documents.keys())

    def suspend_updates(self):
        self._updates.suspend()

    def resume_updates(self):
        self._updates.resume()

    def normalize_filename(self, locator: Locator) -> str:
        if not isinstance(locator, str):
            filename = self.host.uri_to_path(get_locator_uri(locator))
        elif is_uri(locator):
            filename = self.host.uri_to_path(locator)
        else:
            filename = locator

        return self.host.normalize(self.host.resolve(filename))

    def normalize_uri(self, locator: Locator) -> str:
        return locator_to_uri(locator)

    def open(self, locator: Locator) -> GrammarDocument | None:
        """Open a document on the server, reading its content from disk.

        A newly held document fires `opened_on_server`. Listeners expecting
        `closed_on_server` here, as older clients of this layer did, only get
        it from `close`.
        """
        filename = self.normalize_filename(locator)
        text = self.host.read_file(filename)

        if text is None:
            logging.debug(f"Could not open `{filename}`, file is unreadable")
            return None

        document, created = self._get_or_create_document(filename)
        changed = document.text != text
        was_open_on_server = document.is_open_on_server

        document.uri = self.normalize_uri(locator)
        document.text = text
        self._open_document_on_server(document)

        self._notify_opened(
            document,
            created,
            changed,
            None if was_open_on_server else self.events.opened_on_server,
        )

        return document

    def close(self, locator: Locator):
        """Release the server's hold on a document."""
        document = self._documents.get(self.normalize_filename(locator))

        if document is not None:
            self._close_document_on_server(document)

    def handle_open_client_document(self, params: lsp.DidOpenTextDocumentParams):
        text_document = params.text_document
        self._update_client_document(text_document.uri, text_document.text)

    def handle_update_client_document(self, params: lsp.DidChangeTextDocumentParams):
        # Full sync, every change carries the whole text
        if not params.content_changes:
            return

        change = params.content_changes[-1]
        self._update_client_document(params.text_document.uri, change.text)

    def handle_close_client_document(self, params: lsp.DidCloseTextDocumentParams):
        filename = self.normalize_filename(params.text_document.uri)
        document = self._documents.get(filename)

        if document is None or not document.is_open_on_client:
            return

        document.is_open_on_client = False
        logging.debug(f"Closed `{filename}` on client")

        if document.is_open_on_server and self.watcher:
            self.watcher.watch(filename)

        self._invalidate_grammar()
        self.events.closed_on_client.fire(document)

        if not document.is_open:
            self._remove_document(document)

    def dispose(self):
        """Forget every document and listener at the end of a session."""
        self._documents.clear()
        self._grammar = self._previous_grammar = None
        self._root_names = None
        self.events.clear()

    def dump(self) -> str:
        lines = []

        for document in self._documents.values():
            sides = [
                side
                for side, is_open in [
                    ("client", document.is_open_on_client),
                    ("server", document.is_open_on_server),
                ]
                if is_open
            ]
            lines.append(f"{document.filename} [{', '.join(sides)}] {document.uri}")

        return "\n".join(lines)

    def _update_client_document(self, uri: str, text: str):
        filename = self.normalize_filename(uri)
        document, created = self._get_or_create_document(filename)
        changed = document.text != text
        was_open_on_client = document.is_open_on_client

        document.uri = uri
        document.text = text
        self._open_document_on_client(document)

        self._notify_opened(
            document,
            created,
            changed,
            None if was_open_on_client else self.events.opened_on_client,
        )

    def _notify_opened(
        self,
        document: GrammarDocument,
        created: bool,
        changed: bool,
        opened: Event[Any] | None,
    ):
        if changed:
            self._invalidate_grammar()

        if created:
            self.events.created.fire(document)

        if opened is not None:
            opened.fire(document)

        if changed:
            self.events.content_changed.fire(document)
            self._updates.request()

    def _get_or_create_document(self, filename: str) -> tuple[GrammarDocument, bool]:
        if document := self._documents.get(filename):
            return document, False

        document = GrammarDocument(filename)
        self._documents[filename] = document
        logging.debug(f"Created `{filename}`")

        return document, True

    def _remove_document(self, document: GrammarDocument):
        del self._documents[document.filename]
        logging.debug(f"Removed `{document.filename}`")

        self._invalidate_grammar()
        self.events.closed.fire(document)
        self._updates.request()

    def _open_document_on_client(self, document: GrammarDocument):
        if document.is_open_on_client:
            return

        document.is_open_on_client = True
        logging.debug(f"Opened `{document.filename}` on client")

        # The root set changed
        self._invalidate_grammar()

        # Edits now come from the client instead of the file system
        if document.is_open_on_server and self.watcher:
            self.watcher.unwatch(document.filename)

    def _open_document_on_server(self, document: GrammarDocument):
        if document.is_open_on_server:
            return

        document.is_open_on_server = True
        logging.debug(f"Opened `{document.filename}` on server")

        if not document.is_open_on_client and self.watcher:
            self.watcher.watch(document.filename)

    def _close_document_on_server(self, document: GrammarDocument):
        if not document.is_open_on_server:
            return

        document.is_open_on_server = False
        logging.debug(f"Closed `{document.filename}` on server")

        if not document.is_open_on_client and self.watcher:
            self.watcher.unwatch(document.filename)

        self.events.closed_on_server.fire(document)

        if not document.is_open:
            self._remove_document(document)

    def _read_file(self, filename: str) -> str | None:
        """Source reader handed to the compiler, marks every file it touches."""
        document = self._documents.get(filename)

        if document is None:
            text = self.host.read_file(filename)
            if text is None:
                return None

            document, _ = self._get_or_create_document(filename)
            document.uri = self.normalize_uri(filename)
            document.text = text
            self._open_document_on_server(document)

            self.events.created.fire(document)
            self.events.opened_on_server.fire(document)

        document.marked = True
        return document.text

    def _invalidate_grammar(self):
        # The compilation being built already reflects what changes meanwhile
        if self._updates.is_rebuilding:
            return

        self._root_names = None
        self._grammar = None

    def _refresh_grammar(self) -> Grammar:
        with self._updates.rebuilding():
            root_names: list[str] = []

            for document in self._documents.values():
                document.marked = document.is_open_on_client
                if document.is_open_on_client:
                    root_names.append(document.filename)

            grammar = Grammar(
                root_names, self.options, self._read_file, self._previous_grammar
            )
            grammar.check()

            self._root_names = root_names
            self._grammar = self._previous_grammar = grammar

            # Sweep documents no root reaches anymore
            for document in self.all():
                if not document.marked and not document.is_open_on_client:
                    self._close_document_on_server(document)

            logging.debug(
                f"Rebuilt grammar from {len(root_names)} root(s), tracking {len(self._documents)} document(s)"
            )

        # Listeners of a flushed update may already have invalidated it again
        return grammar
