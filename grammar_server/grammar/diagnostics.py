from dataclasses import dataclass
from enum import Enum

from tokenstream import SourceLocation

__all__ = ["DiagnosticCode", "DiagnosticSeverity", "GrammarDiagnostic"]


class DiagnosticCode(int, Enum):
    SYNTAX_ERROR = 1000
    CANNOT_READ_FILE = 2000
    DUPLICATE_PRODUCTION = 2001
    CANNOT_FIND_PRODUCTION = 2002
    UNUSED_PRODUCTION = 2003


class DiagnosticSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class GrammarDiagnostic:
    code: DiagnosticCode
    message: str
    filename: str
    location: SourceLocation
    end_location: SourceLocation
    severity: DiagnosticSeverity = DiagnosticSeverity.ERROR

    def format(self) -> str:
        return f"{self.filename}:{self.location.lineno}:{self.location.colno}: {self.severity.value} GM{self.code.value}: {self.message}"
