import argparse
import logging
from functools import partial

from lsprotocol import types as lsp

import grammar_server

from .grammar import GrammarOptions
from .server import GrammarLanguageServer
from .server.features.definition import get_definition
from .server.features.diagnostics import clear_diagnostics, publish_diagnostics
from .server.features.references import get_references
from .server.features.rename import rename_production

LOG_FORMAT = "%(levelname)s:%(filename)s:%(lineno)d:\t%(message)s"


def create_server(options: GrammarOptions | None = None, **kwargs):
    server = GrammarLanguageServer(
        "grammar-server", grammar_server.__version__, options=options, **kwargs
    )

    events = server.documents.events
    events.updated.subscribe(lambda _: publish_diagnostics(server))
    events.closed.subscribe(partial(clear_diagnostics, server))

    @server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
    def did_open(ls: GrammarLanguageServer, params: lsp.DidOpenTextDocumentParams):
        ls.documents.handle_open_client_document(params)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
    def did_change(ls: GrammarLanguageServer, params: lsp.DidChangeTextDocumentParams):
        ls.documents.handle_update_client_document(params)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
    def did_close(ls: GrammarLanguageServer, params: lsp.DidCloseTextDocumentParams):
        ls.documents.handle_close_client_document(params)

    @server.feature(lsp.TEXT_DOCUMENT_DEFINITION)
    def definition(ls: GrammarLanguageServer, params: lsp.DefinitionParams):
        return get_definition(ls, params)

    @server.feature(lsp.TEXT_DOCUMENT_REFERENCES)
    def references(ls: GrammarLanguageServer, params: lsp.ReferenceParams):
        return get_references(ls, params)

    @server.feature(lsp.TEXT_DOCUMENT_RENAME)
    def rename(ls: GrammarLanguageServer, params: lsp.RenameParams):
        return rename_production(ls, params)

    @server.command("grammar.server.dumpDocuments")
    def dump(ls: GrammarLanguageServer, *args):
        ls.show_message_log(ls.documents.dump())

    return server


def add_arguments(parser: argparse.ArgumentParser):
    parser.description = "Language server for grammar files"

    parser.add_argument("--tcp", action="store_true", help="Use TCP server")
    parser.add_argument("--ws", action="store_true", help="Use WebSocket server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind to this address")
    parser.add_argument("--port", type=int, default=2087, help="Bind to this port")
    parser.add_argument(
        "--log-file",
        default="grammar-server.log",
        help="File the server logs to",
    )
    parser.add_argument(
        "--log-level",
        default="DEBUG",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Minimum level of logged messages",
    )
    parser.add_argument(
        "--report-unused",
        action="store_true",
        help="Warn about productions that are never referenced",
    )


def main():
    parser = argparse.ArgumentParser()
    add_arguments(parser)
    args = parser.parse_args()

    logging.basicConfig(
        filename=args.log_file,
        filemode="w",
        level=args.log_level,
        format=LOG_FORMAT,
    )
    logging.info(f"Starting Grammar Server {grammar_server.__version__}")

    server = create_server(GrammarOptions(report_unused=args.report_unused))

    if args.tcp:
        server.start_tcp(args.host, args.port)
    elif args.ws:
        server.start_ws(args.host, args.port)
    else:
        server.start_io()


if __name__ == "__main__":
    main()
