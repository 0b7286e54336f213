import logging
import re

from tokenstream import InvalidSyntax, SourceLocation, Token, TokenStream

from .diagnostics import DiagnosticCode, GrammarDiagnostic
from .nodes import Empty, Identifier, Import, Production, SourceFile, Symbol, Terminal

__all__ = ["parse_source_file", "GrammarSyntaxError"]


# Order matters, `unknown` must stay last so every character produces a token
TOKEN_PATTERNS = {
    "comment": r"//[^\r\n]*",
    "directive": r"@[A-Za-z]+",
    "define": r":=",
    "empty": r"\[empty\]",
    "identifier": r"[A-Za-z_][A-Za-z0-9_]*",
    "string": r"'(?:[^'\\\r\n]|\\.)*'|\"(?:[^\"\\\r\n]|\\.)*\"",
    "bar": r"\|",
    "semicolon": r";",
    "unknown": r"\S",
}

DESCRIPTIONS = {
    "directive": "a directive",
    "define": "':='",
    "empty": "'[empty]'",
    "identifier": "an identifier",
    "string": "a string",
    "bar": "'|'",
    "semicolon": "';'",
}


class GrammarSyntaxError(Exception):
    def __init__(self, message: str, location: SourceLocation, end_location: SourceLocation):
        super().__init__(message)
        self.message = message
        self.location = location
        self.end_location = end_location


def end_of_text(text: str) -> SourceLocation:
    line_start = text.rfind("\n") + 1
    return SourceLocation(len(text), text.count("\n") + 1, len(text) - line_start + 1)


def unquote(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value[1:-1])


def consume(stream: TokenStream, *patterns: str) -> Token | None:
    token = stream.peek()

    if token is None or not token.match(*patterns):
        return None

    return stream.expect_any(*patterns)


def expect(stream: TokenStream, *patterns: str) -> Token:
    if token := consume(stream, *patterns):
        return token

    expected = " or ".join(DESCRIPTIONS[pattern] for pattern in patterns)

    if (found := stream.peek()) is None:
        location = end_of_text(stream.source)
        raise GrammarSyntaxError(
            f"Expected {expected} but reached end of file.", location, location
        )

    raise GrammarSyntaxError(
        f"Expected {expected} but found {found.value!r}.",
        found.location,
        found.end_location,
    )


def skip_statement(stream: TokenStream):
    for token in stream:
        if token.match("semicolon"):
            break


def parse_symbol(stream: TokenStream, filename: str) -> Symbol | None:
    token = consume(stream, "identifier", "string", "empty")

    if token is None:
        return None

    if token.match("identifier"):
        return Identifier(token.location, token.end_location, filename, token.value)

    if token.match("string"):
        return Terminal(token.location, token.end_location, unquote(token.value))

    return Empty(token.location, token.end_location)


def parse_alternative(stream: TokenStream, filename: str) -> list[Symbol]:
    symbols: list[Symbol] = []

    while symbol := parse_symbol(stream, filename):
        symbols.append(symbol)

    if not symbols:
        expect(stream, "identifier", "string", "empty")

    return symbols


def parse_import(stream: TokenStream, directive: Token) -> Import:
    if directive.value != "@import":
        raise GrammarSyntaxError(
            f"Unknown directive {directive.value!r}.",
            directive.location,
            directive.end_location,
        )

    path = expect(stream, "string")
    end = consume(stream, "semicolon") or path

    return Import(directive.location, end.end_location, unquote(path.value))


def parse_production(stream: TokenStream, name: Token, filename: str) -> Production:
    expect(stream, "define")

    alternatives = [parse_alternative(stream, filename)]
    while consume(stream, "bar"):
        alternatives.append(parse_alternative(stream, filename))

    end = expect(stream, "semicolon")

    return Production(
        name.location,
        end.end_location,
        Identifier(name.location, name.end_location, filename, name.value),
        alternatives,
    )


def parse_statement(stream: TokenStream, source_file: SourceFile):
    token = expect(stream, "directive", "identifier")

    if token.match("directive"):
        source_file.imports.append(parse_import(stream, token))
    else:
        source_file.productions.append(
            parse_production(stream, token, source_file.filename)
        )


def syntax_error(filename: str, exc: GrammarSyntaxError | InvalidSyntax):
    if isinstance(exc, GrammarSyntaxError):
        message = exc.message
    else:
        message = exc.format(filename)

    location = getattr(exc, "location", None) or SourceLocation(0, 1, 1)
    end_location = getattr(exc, "end_location", None) or location

    return GrammarDiagnostic(
        code=DiagnosticCode.SYNTAX_ERROR,
        message=message,
        filename=filename,
        location=location,
        end_location=end_location,
    )


def parse_source_file(filename: str, text: str) -> SourceFile:
    """Parse a grammar source, recovering at the next `;` after an error."""
    source_file = SourceFile(filename, text)
    stream = TokenStream(text)

    with stream.syntax(**TOKEN_PATTERNS), stream.ignore("comment"):
        while stream.peek() is not None:
            try:
                parse_statement(stream, source_file)
            except (GrammarSyntaxError, InvalidSyntax) as exc:
                diagnostic = syntax_error(filename, exc)
                logging.debug(f"Syntax error: {diagnostic.format()}")
                source_file.diagnostics.append(diagnostic)
                skip_statement(stream)

    return source_file
