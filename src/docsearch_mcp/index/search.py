"""FTS5 full-text search over indexed documents.

Provides:
- search_documents(): Run a MATCH expression and return matching files
- count_matches(): Count matching files without fetching them

FTS5 query syntax supported (passed through verbatim):
- Column filter: "content:error", "name:report"
- Prefix: "name:rep*"
- Boolean: "content:error AND name:report*"
- Phrases: 'content:"disk full"'

Results come back in ascending sequence_id order, i.e. the order the
documents were indexed. No relevance ranking is applied.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from ..errors import InvalidQueryError, StorageError

# SQLite messages that mean the MATCH expression itself is bad
_QUERY_ERROR_MARKERS = (
    "fts5: syntax error",
    "unterminated string",
    "no such column",
    "unknown special query",
    "fts5: column queries are not supported",
)


@dataclass
class SearchResult:
    """A single matching file. Never carries the document content."""

    id: str
    file_name: str
    directory: str
    extension: str


def _check_query(match_query: str | None) -> str:
    if match_query is None or not match_query.strip():
        raise InvalidQueryError("Empty search query")
    return match_query


def _translate_error(match_query: str, e: sqlite3.Error) -> Exception:
    """Map a sqlite3 error raised by MATCH to the docsearch taxonomy."""
    message = str(e).lower()
    if isinstance(e, sqlite3.OperationalError) and any(
        marker in message for marker in _QUERY_ERROR_MARKERS
    ):
        return InvalidQueryError(f"Invalid query {match_query!r}: {e}")
    return StorageError(f"Search failed: {e}")


def search_documents(
    conn: sqlite3.Connection,
    match_query: str | None,
    limit: int | None = None,
) -> list[SearchResult]:
    """
    Search indexed documents with an FTS5 MATCH expression.

    Args:
        conn: Database connection
        match_query: Already-built MATCH expression (see builders.py)
        limit: Maximum results (None for all)

    Returns:
        List of SearchResult in indexing order; empty if nothing matches

    Raises:
        InvalidQueryError: If the query is empty or not valid FTS5 syntax
        StorageError: If the database fails
    """
    match_query = _check_query(match_query)

    # documents_fts.rowid is the documents.sequence_id of the same file
    sql = """
        SELECT
            d.id,
            d.name,
            d.directory,
            d.extension
        FROM documents_fts
        JOIN documents d ON d.sequence_id = documents_fts.rowid
        WHERE documents_fts MATCH ?
        ORDER BY documents_fts.rowid
    """

    params: list = [match_query]
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    try:
        cursor = conn.execute(sql, params)
        return [
            SearchResult(
                id=row["id"],
                file_name=row["name"],
                directory=row["directory"],
                extension=row["extension"],
            )
            for row in cursor
        ]
    except sqlite3.Error as e:
        raise _translate_error(match_query, e) from e


def count_matches(conn: sqlite3.Connection, match_query: str | None) -> int:
    """
    Count matching documents without returning them.

    Useful for showing "X results found".

    Raises:
        InvalidQueryError: If the query is empty or not valid FTS5 syntax
        StorageError: If the database fails
    """
    match_query = _check_query(match_query)

    sql = """
        SELECT COUNT(*)
        FROM documents_fts
        JOIN documents d ON d.sequence_id = documents_fts.rowid
        WHERE documents_fts MATCH ?
    """

    try:
        cursor = conn.execute(sql, (match_query,))
        return cursor.fetchone()[0]
    except sqlite3.Error as e:
        raise _translate_error(match_query, e) from e
