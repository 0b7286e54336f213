from dataclasses import dataclass, field
from typing import Iterator, Union

from tokenstream import SourceLocation

from .diagnostics import GrammarDiagnostic

__all__ = [
    "Node",
    "Identifier",
    "Terminal",
    "Empty",
    "Symbol",
    "Production",
    "Import",
    "SourceFile",
]


@dataclass(eq=False)
class Node:
    location: SourceLocation
    end_location: SourceLocation

    def contains(self, line: int, character: int) -> bool:
        """Check a zero-based position against the node, end inclusive."""
        if not (self.location.lineno - 1 <= line <= self.end_location.lineno - 1):
            return False

        if line == self.location.lineno - 1 and character < self.location.colno - 1:
            return False

        if line == self.end_location.lineno - 1 and character > self.end_location.colno - 1:
            return False

        return True


@dataclass(eq=False)
class Identifier(Node):
    filename: str
    value: str


@dataclass(eq=False)
class Terminal(Node):
    value: str


@dataclass(eq=False)
class Empty(Node):
    pass


Symbol = Union[Identifier, Terminal, Empty]


@dataclass(eq=False)
class Production(Node):
    name: Identifier
    alternatives: list[list[Symbol]]


@dataclass(eq=False)
class Import(Node):
    path: str


@dataclass(eq=False)
class SourceFile:
    filename: str
    text: str

    imports: list[Import] = field(default_factory=list)
    productions: list[Production] = field(default_factory=list)
    diagnostics: list[GrammarDiagnostic] = field(default_factory=list)

    def identifiers(self) -> Iterator[Identifier]:
        for production in self.productions:
            yield production.name

            for alternative in production.alternatives:
                for symbol in alternative:
                    if isinstance(symbol, Identifier):
                        yield symbol

    def identifier_at(self, line: int, character: int) -> Identifier | None:
        for identifier in self.identifiers():
            if identifier.contains(line, character):
                return identifier

        return None
