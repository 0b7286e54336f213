import logging
import os
import re
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote, urlparse
from urllib.request import url2pathname

__all__ = [
    "FileHost",
    "FileWatcher",
    "HasUri",
    "Locator",
    "is_uri",
    "locator_to_uri",
    "normalize_path",
]


class HasUri(Protocol):
    """Anything carrying a `uri`, such as `lsp.TextDocumentIdentifier`."""

    @property
    def uri(self) -> str: ...


# A plain path, a `file://` uri, or an object carrying a uri
Locator = str | HasUri

URI_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]+://")

# Characters encodeURIComponent leaves alone on top of quote's defaults
URI_COMPONENT_SAFE = "!*'()"


def is_uri(locator: str) -> bool:
    return URI_PATTERN.match(locator) is not None


def normalize_path(path: str) -> str:
    return os.path.normcase(os.path.normpath(path))


def locator_to_uri(locator: Locator) -> str:
    """Turn a locator into the uri shown to the client."""
    if not isinstance(locator, str):
        return get_locator_uri(locator)

    if is_uri(locator):
        return locator

    pathname = "/".join(
        quote(segment, safe=URI_COMPONENT_SAFE)
        for segment in re.split(r"[\\/]", locator)
    )

    return "file://" + pathname if pathname.startswith("/") else "file:///" + pathname


def get_locator_uri(locator: object) -> str:
    uri = getattr(locator, "uri", None)

    if not isinstance(uri, str):
        raise TypeError(f"Expected a path, uri or text document identifier, got {locator!r}")

    return uri


class FileWatcher(Protocol):
    """Receives requests to follow files that are only open on the server."""

    def watch(self, filename: str) -> None: ...

    def unwatch(self, filename: str) -> None: ...


class FileHost:
    """Native file system access used to resolve and read documents."""

    def __init__(self, root: str | os.PathLike[str] | None = None):
        self.root = str(root) if root is not None else None

    def uri_to_path(self, uri: str) -> str:
        parsed = urlparse(uri)
        if parsed.netloc:
            host = "{0}{0}{mnt}{0}".format(os.path.sep, mnt=parsed.netloc)
            return os.path.normpath(
                os.path.join(host, url2pathname(unquote(parsed.path)))
            )

        return os.path.normpath(url2pathname(unquote(parsed.path)))

    def resolve(self, path: str) -> str:
        if os.path.isabs(path):
            return path

        return os.path.join(self.root or os.getcwd(), path)

    def normalize(self, path: str) -> str:
        return normalize_path(path)

    def read_file(self, filename: str) -> str | None:
        try:
            return Path(filename).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logging.debug(f"Unable to read `{filename}`: {exc}")
            return None
