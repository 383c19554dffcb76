"""Shared pytest fixtures for docsearch-mcp tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from docsearch_mcp.index.manager import IndexManager
from docsearch_mcp.index.schema import apply_schema, create_connection
from docsearch_mcp.index.store import Document, DocumentStore


@pytest.fixture
def temp_db():
    """Create an in-memory database with the schema."""
    conn = create_connection(":memory:")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Return a temporary path for a database file."""
    return tmp_path / "test_index.db"


@pytest.fixture
def store(temp_db: sqlite3.Connection) -> DocumentStore:
    """DocumentStore over the in-memory database."""
    return DocumentStore(temp_db)


@pytest.fixture
def sample_documents() -> list[Document]:
    """Return sample documents for testing."""
    return [
        Document(
            id="/docs/notes.txt",
            name="notes.txt",
            extension="txt",
            directory="docs",
            content="hello world",
        ),
        Document(
            id="/docs/report_2024.txt",
            name="report_2024.txt",
            extension="txt",
            directory="docs",
            content="Quarterly error report for the storage cluster.",
        ),
        Document(
            id="/docs/report_draft.md",
            name="report_draft.md",
            extension="md",
            directory="docs",
            content="Draft: no problems found this quarter.",
        ),
        Document(
            id="/web/index.html",
            name="index.html",
            extension="html",
            directory="web",
            content="Welcome page. Contact us about an error.",
        ),
    ]


@pytest.fixture
def populated_store(
    store: DocumentStore, sample_documents: list[Document]
) -> DocumentStore:
    """Store with the sample documents inserted in order."""
    for document in sample_documents:
        store.insert(document)
    return store


@pytest.fixture
def docs_tree(tmp_path: Path) -> Path:
    """
    A small directory tree to scan.

    docs/
        a.TXT        "alpha notes"
        b.md         "beta markdown"
        c            "no extension"
        sub/
            d.txt    "delta error log"
            page.html
    """
    root = tmp_path / "docs"
    sub = root / "sub"
    sub.mkdir(parents=True)
    (root / "a.TXT").write_text("alpha notes", encoding="utf-8")
    (root / "b.md").write_text("beta markdown", encoding="utf-8")
    (root / "c").write_text("no extension", encoding="utf-8")
    (sub / "d.txt").write_text("delta error log", encoding="utf-8")
    (sub / "page.html").write_text(
        "<html><head><style>p {}</style></head>"
        "<body><p>Hello <b>web</b></p><script>var x;</script></body></html>",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def manager(temp_db_path: Path):
    """Open IndexManager on a temporary database file."""
    with IndexManager(db_path=temp_db_path) as m:
        yield m
