"""IndexManager - Central interface for the document index.

Provides:
- index_directory(): Scan a directory tree into the index
- insert_document() / update_document() / delete_document(): Direct writes
- search() / search_terms(): FTS5 search
- get_stats(): Index statistics for status reporting

Ownership:
- The manager owns one connection, opened by open() (or ``with``) and
  released by close(). There is no process-wide instance; whoever creates
  the manager passes it to the components that need it.

Thread Safety:
- A single RLock shared with DocumentStore serializes every statement
- The connection uses check_same_thread=False so work can be handed to
  worker threads (e.g. asyncio.to_thread in the MCP server)
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from ..builders import build_query
from ..config import get_default_extensions, get_index_path
from ..errors import StorageError
from .pipeline import IngestionPipeline, ScanErrorLedger
from .schema import init_database, optimize_fts_index, rebuild_fts_index
from .search import SearchResult, count_matches, search_documents
from .store import Document, DocumentStore

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .extract import TextExtractor
    from .pipeline import ScanState, ScanStats

logger = logging.getLogger(__name__)


@dataclass
class IndexStats:
    """Statistics about the document index."""

    document_count: int
    directory_count: int
    error_count: int
    last_indexed: datetime | None
    db_size_mb: float


@dataclass
class ScanError:
    """A file that was skipped during ingestion."""

    directory: str
    file_name: str
    message: str
    recorded_at: str


class IndexManager:
    """
    Manages the document store and its FTS5 index.

    The index is stored at ~/.docsearch-mcp/index.db by default.
    Set DOCSEARCH_INDEX_PATH to customize the location.

    Usage:
        with IndexManager() as manager:
            manager.index_directory(Path("~/notes").expanduser(), {"txt"})
            results = manager.search_terms(content="invoice")
    """

    def __init__(
        self,
        db_path: Path | None = None,
        extractor: TextExtractor | None = None,
    ):
        """
        Initialize the IndexManager. Call open() before use.

        Args:
            db_path: Custom database path (uses config default if None)
            extractor: Text extractor for scans (SuffixExtractor if None)
        """
        self._db_path = db_path or get_index_path()
        self._extractor = extractor
        self._conn: sqlite3.Connection | None = None
        self._store: DocumentStore | None = None
        self._lock = threading.RLock()

    @property
    def db_path(self) -> Path:
        """Get the database file path."""
        return self._db_path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> IndexManager:
        """
        Open the database, creating the schema if needed.

        Returns:
            self, for chaining

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        with self._lock:
            if self._conn is None:
                self._conn = init_database(self._db_path)
                self._store = DocumentStore(self._conn, self._lock)
                logger.debug("Opened index at %s", self._db_path)
        return self

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._store = None

    def __enter__(self) -> IndexManager:
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("IndexManager is not open; call open() first")
        return self._conn

    @property
    def store(self) -> DocumentStore:
        """The content store (requires an open manager)."""
        self._get_conn()
        return self._store

    def has_index(self) -> bool:
        """Check if an index database exists."""
        return self._db_path.exists()

    # ─────────────────────────────────────────────────────────────────
    # Direct document access
    # ─────────────────────────────────────────────────────────────────

    def insert_document(
        self,
        path: str,
        file_name: str,
        content: str,
        ext: str,
        dirpath: str,
    ) -> int:
        """
        Insert one document without scanning.

        Returns:
            The new document's sequence id

        Raises:
            StorageError: If the write fails
        """
        return self.store.insert(
            Document(
                id=path,
                name=file_name,
                extension=ext,
                directory=dirpath,
                content=content,
            )
        )

    def get_document(self, doc_id: str) -> Document | None:
        """Look up a document by id; None if it was never indexed."""
        return self.store.get_by_id(doc_id)

    def update_document(self, sequence_id: int, document: Document) -> bool:
        """Replace a document's content, name and extension."""
        return self.store.update(sequence_id, document)

    def delete_document(self, sequence_id: int) -> bool:
        """Remove a document and its index entry."""
        return self.store.delete(sequence_id)

    # ─────────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────────

    def search(
        self, match_query: str, limit: int | None = None
    ) -> list[SearchResult]:
        """
        Search with an already-built FTS5 MATCH expression.

        Args:
            match_query: e.g. "content:error AND name:report*"
            limit: Maximum results (None for all)

        Returns:
            Matching documents in indexing order

        Raises:
            InvalidQueryError: If the query is empty or malformed
            StorageError: If the database fails
        """
        conn = self._get_conn()
        with self._lock:
            return search_documents(conn, match_query, limit=limit)

    def search_terms(
        self,
        name: str = "",
        content: str = "",
        limit: int | None = None,
    ) -> list[SearchResult]:
        """
        Search by file-name prefix and/or content term.

        Returns an empty list without querying when both terms are blank.
        """
        match_query = build_query(name, content)
        if match_query is None:
            return []
        return self.search(match_query, limit=limit)

    def count(self, match_query: str) -> int:
        """Count documents matching a MATCH expression."""
        conn = self._get_conn()
        with self._lock:
            return count_matches(conn, match_query)

    # ─────────────────────────────────────────────────────────────────
    # Scanning
    # ─────────────────────────────────────────────────────────────────

    def index_directory(
        self,
        root: Path,
        extensions: Iterable[str] | None = None,
        on_progress: Callable[[int, int], None] | None = None,
        directory: str | None = None,
        on_state: Callable[[ScanState], None] | None = None,
    ) -> ScanStats:
        """
        Index every matching file under ``root``.

        Skipped files are recorded in the scan_errors table and a summary
        row is written to index_runs.

        Args:
            root: Directory to scan
            extensions: Extensions to keep (DOCSEARCH_EXTENSIONS if None;
                        an empty collection keeps every file)
            on_progress: Optional callback(processed, total)
            directory: Label stored on each document (root name if None)
            on_state: Optional callback for ScanState changes

        Returns:
            ScanStats for the run

        Raises:
            FileNotFoundError: If root does not exist
            NotADirectoryError: If root is not a directory
        """
        root = Path(root).expanduser()
        if not root.exists():
            raise FileNotFoundError(f"Directory not found: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")

        if extensions is None:
            extensions = get_default_extensions()

        store = self.store
        ledger = ScanErrorLedger(store)
        pipeline = IngestionPipeline(
            store,
            extractor=self._extractor,
            error_sink=ledger,
            on_state=on_state,
        )

        label = directory or root.name or "root"
        stats = pipeline.run(root, extensions, on_progress, directory=label)

        self._record_run(root, label, stats)
        if stats.indexed_count:
            with self._lock:
                optimize_fts_index(self._get_conn())

        return stats

    def _record_run(self, root: Path, label: str, stats: ScanStats) -> None:
        """Upsert the index_runs row for a finished scan."""
        now = datetime.now().isoformat()
        with self.store.transaction() as conn:
            conn.execute(
                """INSERT INTO index_runs
                   (root, directory, all_file_count, success_file_count,
                    error_file_count, index_size, create_time, update_time,
                    status)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(root) DO UPDATE SET
                    directory = excluded.directory,
                    all_file_count = excluded.all_file_count,
                    success_file_count = excluded.success_file_count,
                    error_file_count = excluded.error_file_count,
                    index_size = excluded.index_size,
                    update_time = excluded.update_time,
                    status = excluded.status""",
                (
                    str(root.resolve()),
                    label,
                    stats.total_discovered,
                    stats.indexed_count,
                    stats.processed_count - stats.indexed_count,
                    stats.indexed_size,
                    now,
                    now,
                    "completed",
                ),
            )

    # ─────────────────────────────────────────────────────────────────
    # Maintenance and status
    # ─────────────────────────────────────────────────────────────────

    def rebuild(self) -> int:
        """
        Rebuild the FTS index from the documents table.

        Returns:
            Number of index entries written
        """
        conn = self._get_conn()
        with self._lock:
            try:
                count = rebuild_fts_index(conn)
                optimize_fts_index(conn)
            except sqlite3.Error as e:
                raise StorageError(f"Rebuild failed: {e}") from e
        logger.info("Rebuilt FTS index with %d entries", count)
        return count

    def get_stats(self) -> IndexStats:
        """
        Get index statistics.

        Returns:
            IndexStats with counts, size, and last scan time
        """
        conn = self._get_conn()

        with self._lock:
            document_count = conn.execute(
                "SELECT COUNT(*) FROM documents"
            ).fetchone()[0]
            directory_count = conn.execute(
                "SELECT COUNT(DISTINCT directory) FROM documents"
            ).fetchone()[0]
            error_count = conn.execute(
                "SELECT COUNT(*) FROM scan_errors"
            ).fetchone()[0]
            row = conn.execute(
                "SELECT MAX(update_time) FROM index_runs"
            ).fetchone()

        last_indexed = None
        if row and row[0]:
            last_indexed = datetime.fromisoformat(row[0])

        db_size_mb = 0.0
        if self._db_path.exists():
            db_size_mb = self._db_path.stat().st_size / (1024 * 1024)

        return IndexStats(
            document_count=document_count,
            directory_count=directory_count,
            error_count=error_count,
            last_indexed=last_indexed,
            db_size_mb=db_size_mb,
        )

    def recent_errors(self, limit: int = 20) -> list[ScanError]:
        """Most recently recorded scan errors, newest first."""
        conn = self._get_conn()
        with self._lock:
            cursor = conn.execute(
                """SELECT directory, file_name, message, recorded_at
                   FROM scan_errors ORDER BY rowid DESC LIMIT ?""",
                (limit,),
            )
            return [
                ScanError(
                    directory=row["directory"] or "",
                    file_name=row["file_name"] or "",
                    message=row["message"] or "",
                    recorded_at=row["recorded_at"] or "",
                )
                for row in cursor
            ]

    def get_setting(self, name: str, default: str | None = None) -> str | None:
        """Read a value from the settings table."""
        conn = self._get_conn()
        with self._lock:
            row = conn.execute(
                "SELECT value FROM settings WHERE name = ?", (name,)
            ).fetchone()
        return row["value"] if row else default

    def set_setting(self, name: str, value: str) -> None:
        """Write a value to the settings table."""
        with self.store.transaction() as conn:
            conn.execute(
                """INSERT INTO settings (name, value) VALUES (?, ?)
                   ON CONFLICT(name) DO UPDATE SET value = excluded.value""",
                (name, value),
            )
