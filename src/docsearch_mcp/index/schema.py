"""SQLite schema for the FTS5 document index.

The schema uses:
- documents: Content store, one row per indexed file
- documents_fts: FTS5 table over (content, name, extension), rowid-correlated
  with documents.sequence_id
- index_runs, settings, favorites, discovered_files, indexed_files,
  scan_errors: side tables with no synchronization contract

There are no triggers between documents and documents_fts.
DocumentStore applies both sides of every mutation in one transaction.

NOTE: documents.id is the file's resolved path but is NOT unique. Scanning
the same directory twice stores each file twice.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path

from ..errors import StorageError

logger = logging.getLogger(__name__)

# Current schema version for migrations
SCHEMA_VERSION = 1

# Default PRAGMAs for all connections (centralized to avoid drift)
DEFAULT_PRAGMAS = {
    "journal_mode": "WAL",  # Better concurrent read performance
    "synchronous": "NORMAL",  # Good balance of safety and speed
    "busy_timeout": 5000,  # Wait up to 5s for locks
}

# Centralized SQL for the content store and its index side
INSERT_DOCUMENT_SQL = """INSERT INTO documents
    (id, name, extension, directory, content)
    VALUES (?, ?, ?, ?, ?)"""

UPDATE_DOCUMENT_SQL = """UPDATE documents
    SET content = ?, name = ?, extension = ?
    WHERE sequence_id = ?"""

INSERT_FTS_SQL = """INSERT INTO documents_fts (rowid, content, name, extension)
    VALUES (?, ?, ?, ?)"""

DELETE_FTS_SQL = "DELETE FROM documents_fts WHERE rowid = ?"

INSERT_SCAN_ERROR_SQL = """INSERT INTO scan_errors
    (directory, file_name, message, category)
    VALUES (?, ?, ?, ?)"""


def create_connection(db_path: Path | str) -> sqlite3.Connection:
    """
    Create a database connection with standard configuration.

    The connection runs in autocommit mode (isolation_level=None);
    DocumentStore opens explicit transactions around each mutation.

    Args:
        db_path: Path to the SQLite database file (or ":memory:")

    Returns:
        Configured connection with WAL mode, busy timeout, and Row factory
    """
    conn = sqlite3.connect(
        db_path, check_same_thread=False, isolation_level=None
    )
    conn.row_factory = sqlite3.Row

    # Apply standard PRAGMAs
    for pragma, value in DEFAULT_PRAGMAS.items():
        conn.execute(f"PRAGMA {pragma}={value}")

    return conn


def get_schema_sql() -> str:
    """Return the complete schema creation SQL."""
    return """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Content store
-- sequence_id correlates each row with its documents_fts rowid
CREATE TABLE IF NOT EXISTS documents (
    sequence_id INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL,                -- Resolved file path (not unique)
    name TEXT NOT NULL,
    extension TEXT NOT NULL DEFAULT '',
    directory TEXT NOT NULL DEFAULT '',  -- Logical scan-root label
    content TEXT NOT NULL DEFAULT '',
    indexed_at TEXT DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_documents_id ON documents(id);
CREATE INDEX IF NOT EXISTS idx_documents_directory ON documents(directory);

-- Full-text index, rowid = documents.sequence_id
CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
    content,
    name,
    extension,
    tokenize='unicode61'
);

-- Scan statistics per scan root
CREATE TABLE IF NOT EXISTS index_runs (
    root TEXT PRIMARY KEY,
    directory TEXT,
    all_file_count INTEGER DEFAULT 0,
    success_file_count INTEGER DEFAULT 0,
    error_file_count INTEGER DEFAULT 0,
    index_size INTEGER DEFAULT 0,    -- Characters indexed by the last run
    create_time TEXT,
    update_time TEXT,
    status TEXT
);

-- Configuration key/value pairs
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    value TEXT
);

-- Favorites (distinct set of documents)
CREATE TABLE IF NOT EXISTS favorites (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT UNIQUE,
    name TEXT,
    extension TEXT,
    directory TEXT,
    content TEXT
);

-- Every file seen by a scan
CREATE TABLE IF NOT EXISTS discovered_files (
    name TEXT,
    directory TEXT
);

-- Successfully indexed files with analytics columns
CREATE TABLE IF NOT EXISTS indexed_files (
    internal_id INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT,
    name TEXT,
    content TEXT,
    size INTEGER,
    extension TEXT,
    modify_time INTEGER,
    md5 TEXT,
    duplicate INTEGER,
    content_status INTEGER,
    tags TEXT,
    create_time INTEGER,
    status INTEGER,
    directory TEXT,
    frequency INTEGER
);

-- Files skipped during ingestion
CREATE TABLE IF NOT EXISTS scan_errors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    directory TEXT,
    file_name TEXT,
    message TEXT,
    category TEXT,
    recorded_at TEXT DEFAULT (datetime('now'))
);
"""


def init_database(db_path: Path) -> sqlite3.Connection:
    """
    Initialize the database with schema, creating parent directories if needed.

    Args:
        db_path: Path to the SQLite database file

    Returns:
        Open database connection with check_same_thread=False

    Raises:
        StorageError: If the database cannot be opened, SQLite lacks FTS5,
            or the file was written by a newer schema version

    Security:
        Sets file permissions to 0600 (owner read/write only) on new databases
        since the index holds full document text.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    is_new_db = not db_path.exists()

    try:
        conn = create_connection(db_path)
    except sqlite3.Error as e:
        raise StorageError(f"Cannot open index at {db_path}: {e}") from e

    # Must be done after sqlite3.connect() creates the file
    if is_new_db:
        try:
            os.chmod(db_path, 0o600)
            logger.debug("Set secure permissions (0600) on %s", db_path)
        except OSError as e:
            logger.warning(
                "Could not set secure permissions on %s: %s", db_path, e
            )

    try:
        apply_schema(conn)
    except BaseException:
        conn.close()
        raise

    return conn


def apply_schema(conn: sqlite3.Connection) -> None:
    """
    Create the schema on a fresh connection or verify an existing one.

    Raises:
        StorageError: If FTS5 is unavailable or the stored version is newer
    """
    sql = "SELECT name FROM sqlite_master "
    sql += "WHERE type='table' AND name='schema_version'"
    try:
        cursor = conn.execute(sql)
        if cursor.fetchone() is None:
            logger.info(
                "Creating fresh database schema (version %d)", SCHEMA_VERSION
            )
            conn.executescript(get_schema_sql())
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            return

        cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
        row = cursor.fetchone()
        current_version = row[0] if row else 0
    except sqlite3.OperationalError as e:
        if "fts5" in str(e).lower():
            raise StorageError(
                "This SQLite build has no FTS5 support"
            ) from e
        raise StorageError(f"Cannot initialize schema: {e}") from e

    if current_version > SCHEMA_VERSION:
        raise StorageError(
            f"Index schema version {current_version} is newer than "
            f"supported version {SCHEMA_VERSION}"
        )


def rebuild_fts_index(conn: sqlite3.Connection) -> int:
    """
    Rebuild the FTS index from the documents table.

    Use this to repair an index that was damaged outside DocumentStore.
    Runs in a single transaction.

    Returns:
        Number of index entries written
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        conn.execute("DELETE FROM documents_fts")
        conn.execute(
            """INSERT INTO documents_fts (rowid, content, name, extension)
               SELECT sequence_id, content, name, extension FROM documents"""
        )
        cursor = conn.execute("SELECT COUNT(*) FROM documents_fts")
        count = cursor.fetchone()[0]
        conn.execute("COMMIT")
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    return count


def optimize_fts_index(conn: sqlite3.Connection) -> None:
    """
    Optimize the FTS index for better query performance.

    Call after large scans.
    """
    conn.execute("INSERT INTO documents_fts(documents_fts) VALUES('optimize')")
