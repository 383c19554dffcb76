"""DocumentStore - content store with explicit FTS synchronization.

Every mutation of the documents table applies the matching change to
documents_fts inside the same transaction:

- insert: add the document row, then an FTS row with rowid = sequence_id
- delete: remove the FTS row, then the document row
- update: remove the FTS row, update the document, add the new FTS row

If either side fails the transaction is rolled back and StorageError is
raised, so the two tables never disagree about which sequence ids exist.

Thread Safety:
- All access goes through a lock shared with IndexManager
- Transactions are not reentrant
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import StorageError
from .schema import (
    DELETE_FTS_SQL,
    INSERT_DOCUMENT_SQL,
    INSERT_FTS_SQL,
    UPDATE_DOCUMENT_SQL,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """A single indexed file."""

    id: str
    name: str
    extension: str
    directory: str
    content: str
    sequence_id: int | None = None


def document_to_row(document: Document) -> tuple[str, str, str, str, str]:
    """
    Convert a Document to a row tuple matching INSERT_DOCUMENT_SQL.

    Args:
        document: Document to persist (sequence_id is ignored)

    Returns:
        (id, name, extension, directory, content)
    """
    return (
        document.id,
        document.name,
        document.extension,
        document.directory,
        document.content or "",
    )


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        name=row["name"],
        extension=row["extension"],
        directory=row["directory"],
        content=row["content"],
        sequence_id=row["sequence_id"],
    )


class DocumentStore:
    """
    Durable table of indexed documents kept in lockstep with the FTS index.

    Usage:
        store = DocumentStore(conn)
        seq = store.insert(Document("/a/notes.txt", "notes.txt", "txt",
                                    "a", "hello world"))
        store.update(seq, ...)
        store.delete(seq)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        lock: threading.RLock | None = None,
    ):
        """
        Args:
            conn: Connection with the schema applied, in autocommit mode
            lock: Lock serializing access (a private one if None)
        """
        self._conn = conn
        self._lock = lock or threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Lock that serializes every use of the connection."""
        return self._lock

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block as one atomic unit of work.

        Commits on success. Rolls back and re-raises on any exception,
        translating sqlite3 errors to StorageError.
        """
        with self._lock:
            conn = self._conn
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageError(f"Cannot start transaction: {e}") from e

            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException as e:
                # Some errors (e.g. SQLITE_FULL) already ended the transaction
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                if isinstance(e, sqlite3.Error):
                    raise StorageError(str(e)) from e
                raise

    # ─────────────────────────────────────────────────────────────────
    # Index side of each mutation
    # ─────────────────────────────────────────────────────────────────

    def _add_entry(
        self, conn: sqlite3.Connection, sequence_id: int, document: Document
    ) -> None:
        conn.execute(
            INSERT_FTS_SQL,
            (
                sequence_id,
                document.content or "",
                document.name,
                document.extension,
            ),
        )

    def _remove_entry(
        self, conn: sqlite3.Connection, sequence_id: int
    ) -> None:
        conn.execute(DELETE_FTS_SQL, (sequence_id,))

    # ─────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────

    def insert(self, document: Document) -> int:
        """
        Persist a new document and its index entry.

        Duplicate ids are accepted; callers de-duplicate if they need to.

        Args:
            document: Document to insert (sequence_id is assigned here)

        Returns:
            The new sequence_id

        Raises:
            StorageError: If either write fails (nothing is kept)
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                INSERT_DOCUMENT_SQL, document_to_row(document)
            )
            sequence_id = cursor.lastrowid
            self._add_entry(conn, sequence_id, document)

        document.sequence_id = sequence_id
        logger.debug("Inserted %s as #%d", document.id, sequence_id)
        return sequence_id

    def delete(self, sequence_id: int) -> bool:
        """
        Remove a document and its index entry.

        Returns:
            True if a document was removed, False if none had that key

        Raises:
            StorageError: If either write fails (nothing is removed)
        """
        with self.transaction() as conn:
            self._remove_entry(conn, sequence_id)
            cursor = conn.execute(
                "DELETE FROM documents WHERE sequence_id = ?", (sequence_id,)
            )
            removed = cursor.rowcount > 0

        return removed

    def update(self, sequence_id: int, document: Document) -> bool:
        """
        Replace a document's content, name and extension.

        The old index entry is removed before the new one is added.

        Returns:
            True if the document existed and was updated, False otherwise

        Raises:
            StorageError: If any write fails (the old state is kept)
        """
        with self.transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM documents WHERE sequence_id = ?", (sequence_id,)
            ).fetchone()
            if exists is None:
                return False

            self._remove_entry(conn, sequence_id)
            conn.execute(
                UPDATE_DOCUMENT_SQL,
                (
                    document.content or "",
                    document.name,
                    document.extension,
                    sequence_id,
                ),
            )
            self._add_entry(conn, sequence_id, document)

        return True

    # ─────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────

    def _fetch_one(self, sql: str, params: tuple) -> Document | None:
        with self._lock:
            try:
                row = self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
        return _row_to_document(row) if row else None

    def get_by_id(self, doc_id: str) -> Document | None:
        """
        Look up a document by its external id (file path).

        When the same id was indexed more than once, the earliest row wins.

        Returns:
            The Document, or None if no row has that id
        """
        return self._fetch_one(
            "SELECT * FROM documents WHERE id = ? "
            "ORDER BY sequence_id LIMIT 1",
            (doc_id,),
        )

    def get(self, sequence_id: int) -> Document | None:
        """Look up a document by its sequence id."""
        return self._fetch_one(
            "SELECT * FROM documents WHERE sequence_id = ?", (sequence_id,)
        )

    def count(self) -> int:
        """Number of documents in the store."""
        with self._lock:
            return self._conn.execute(
                "SELECT COUNT(*) FROM documents"
            ).fetchone()[0]

    def sequence_ids(self) -> set[int]:
        """All sequence ids present in the content store."""
        with self._lock:
            cursor = self._conn.execute("SELECT sequence_id FROM documents")
            return {row[0] for row in cursor}

    def index_keys(self) -> set[int]:
        """All rowids present in the FTS index."""
        with self._lock:
            cursor = self._conn.execute("SELECT rowid FROM documents_fts")
            return {row[0] for row in cursor}

    def is_consistent(self) -> bool:
        """True if documents and the FTS index hold the same sequence ids."""
        with self._lock:
            fts_count = self._conn.execute(
                "SELECT COUNT(*) FROM documents_fts"
            ).fetchone()[0]
            return (
                fts_count == self.count()
                and self.index_keys() == self.sequence_ids()
            )
