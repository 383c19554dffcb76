"""Exception types shared by the index engine and its outer surfaces.

- StorageError: the SQLite store rejected a read or write
- ExtractionError: a file's text could not be read or decoded
- InvalidQueryError: an empty or malformed MATCH expression reached search

Lookups that find nothing return None instead of raising.
"""


class DocsearchError(Exception):
    """Base class for all docsearch-mcp errors."""


class StorageError(DocsearchError):
    """The persistent store rejected a read or write."""


class ExtractionError(DocsearchError):
    """A file's content could not be read or decoded."""

    def __init__(self, path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class InvalidQueryError(DocsearchError, ValueError):
    """An empty or syntactically invalid full-text query."""
