import logging

from pygls.server import LanguageServer

from ..grammar import GrammarOptions
from .documents import DocumentManager, GrammarDocument
from .host import FileHost, FileWatcher

__all__ = ["GrammarLanguageServer", "DocumentManager", "GrammarDocument"]


class GrammarLanguageServer(LanguageServer):
    documents: DocumentManager

    def __init__(
        self,
        *args,
        options: GrammarOptions | None = None,
        host: FileHost | None = None,
        watcher: FileWatcher | None = None,
        **kwargs,
    ):
        kwargs.setdefault("text_document_sync_kind", DocumentManager.sync_kind)
        super().__init__(*args, **kwargs)
        self.documents = DocumentManager(host=host, options=options, watcher=watcher)

    def shutdown(self):
        logging.info("Shutting down, releasing tracked documents")
        self.documents.dispose()
        super().shutdown()
