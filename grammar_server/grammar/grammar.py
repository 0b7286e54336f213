import logging
import os
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .diagnostics import DiagnosticCode, DiagnosticSeverity, GrammarDiagnostic
from .nodes import Identifier, Import, SourceFile
from .parser import parse_source_file

__all__ = ["Grammar", "GrammarOptions", "Resolver", "ReadFile"]


ReadFile = Callable[[str], Optional[str]]


def resolve_import(filename: str, node: Import) -> str:
    path = os.path.join(os.path.dirname(filename), node.path)
    return os.path.normcase(os.path.normpath(path))


@dataclass
class GrammarOptions:
    report_unused: bool = False


class Grammar:
    """A compilation of the root grammar files and everything they import.

    Sources are pulled in through `read_file` while the grammar is constructed.
    Parsed files of `old_grammar` are reused when their text did not change.
    """

    def __init__(
        self,
        root_names: Iterable[str],
        options: GrammarOptions | None = None,
        read_file: ReadFile | None = None,
        old_grammar: "Grammar | None" = None,
    ):
        self.root_names = list(root_names)
        self.options = options or GrammarOptions()

        self._read_file = read_file or (lambda filename: None)
        self._source_files: dict[str, SourceFile] = {}

        self._checked = False
        self._declarations: dict[str, list[Identifier]] = {}
        self._references: dict[str, list[Identifier]] = {}
        self._diagnostics: dict[str, list[GrammarDiagnostic]] = {}
        self._resolver: Resolver | None = None

        self._load(old_grammar._source_files if old_grammar else {})

    @property
    def source_files(self) -> list[SourceFile]:
        return list(self._source_files.values())

    @property
    def resolver(self) -> "Resolver":
        if self._resolver is None:
            self.check()
            self._resolver = Resolver(self)

        return self._resolver

    @property
    def declarations(self) -> dict[str, list[Identifier]]:
        self.check()
        return self._declarations

    @property
    def references(self) -> dict[str, list[Identifier]]:
        self.check()
        return self._references

    def get_source_file(self, filename: str) -> SourceFile | None:
        return self._source_files.get(filename)

    def diagnostics_for(self, filename: str) -> list[GrammarDiagnostic]:
        self.check()
        return list(self._diagnostics.get(filename, []))

    def _load(self, previous: dict[str, SourceFile]):
        queue = deque(self.root_names)
        reused = 0

        while queue:
            filename = queue.popleft()
            if filename in self._source_files:
                continue

            text = self._read_file(filename)
            if text is None:
                continue

            source_file = previous.get(filename)
            if source_file is not None and source_file.text == text:
                reused += 1
            else:
                source_file = parse_source_file(filename, text)

            self._source_files[filename] = source_file

            for node in source_file.imports:
                queue.append(resolve_import(filename, node))

        logging.debug(
            f"Loaded {len(self._source_files)} grammar file(s), reused {reused}"
        )

    def _report(self, identifier: Identifier, code: DiagnosticCode, message: str, severity=DiagnosticSeverity.ERROR):
        self._diagnostics.setdefault(identifier.filename, []).append(
            GrammarDiagnostic(
                code=code,
                message=message,
                filename=identifier.filename,
                location=identifier.location,
                end_location=identifier.end_location,
                severity=severity,
            )
        )

    def check(self):
        """Bind production names and collect diagnostics, only done once."""
        if self._checked:
            return

        self._checked = True

        for filename, source_file in self._source_files.items():
            self._diagnostics[filename] = list(source_file.diagnostics)

            for node in source_file.imports:
                if resolve_import(filename, node) not in self._source_files:
                    self._diagnostics[filename].append(
                        GrammarDiagnostic(
                            code=DiagnosticCode.CANNOT_READ_FILE,
                            message=f"Cannot read file '{node.path}'.",
                            filename=filename,
                            location=node.location,
                            end_location=node.end_location,
                        )
                    )

            for production in source_file.productions:
                name = production.name
                self._declarations.setdefault(name.value, []).append(name)

        for name, declarations in self._declarations.items():
            for duplicate in declarations[1:]:
                self._report(
                    duplicate,
                    DiagnosticCode.DUPLICATE_PRODUCTION,
                    f"Duplicate production '{name}'.",
                )

        for source_file in self._source_files.values():
            for production in source_file.productions:
                for alternative in production.alternatives:
                    for symbol in alternative:
                        if not isinstance(symbol, Identifier):
                            continue

                        self._references.setdefault(symbol.value, []).append(symbol)

                        if symbol.value not in self._declarations:
                            self._report(
                                symbol,
                                DiagnosticCode.CANNOT_FIND_PRODUCTION,
                                f"Cannot find production '{symbol.value}'.",
                            )

        if self.options.report_unused:
            for name, declarations in self._declarations.items():
                if name not in self._references:
                    self._report(
                        declarations[0],
                        DiagnosticCode.UNUSED_PRODUCTION,
                        f"Production '{name}' is never referenced.",
                        DiagnosticSeverity.WARNING,
                    )


class Resolver:
    """Navigates from a position in a source file to bound identifiers."""

    def __init__(self, grammar: Grammar):
        self.grammar = grammar

    def get_identifier(self, filename: str, line: int, character: int) -> Identifier | None:
        source_file = self.grammar.get_source_file(filename)

        if source_file is None:
            return None

        return source_file.identifier_at(line, character)

    def get_declarations(self, filename: str, line: int, character: int) -> list[Identifier]:
        if not (identifier := self.get_identifier(filename, line, character)):
            return []

        return list(self.grammar.declarations.get(identifier.value, []))

    def get_references(
        self,
        filename: str,
        line: int,
        character: int,
        include_declaration: bool = True,
    ) -> list[Identifier]:
        if not (identifier := self.get_identifier(filename, line, character)):
            return []

        references = list(self.grammar.references.get(identifier.value, []))

        if include_declaration:
            references = [*self.grammar.declarations.get(identifier.value, []), *references]

        return references
