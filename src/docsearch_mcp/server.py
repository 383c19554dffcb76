"""
Document Search MCP Server

Provides MCP tools for searching a local FTS5 index of text documents.

TOOLS (5 total):
- search(name?, content?, limit?) - File-name prefix and/or content search
- search_query(query, limit?) - Raw FTS5 MATCH expression
- get_document(id) - Single document with its text
- index_directory(path, extensions?, label?) - Scan a directory into the index
- index_status() - Index statistics

Blocking index work runs in a worker thread via asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

from fastmcp import FastMCP
from typing_extensions import TypedDict

from .config import get_search_limit

if TYPE_CHECKING:
    from .index import IndexManager
    from .index.search import SearchResult


# ========== Response Type Definitions ==========


class SearchHit(TypedDict):
    """A matching file (search results never include content)."""

    id: str
    file_name: str
    directory: str
    extension: str


class DocumentDetail(TypedDict):
    """A single indexed document with its text."""

    id: str
    sequence_id: int
    name: str
    extension: str
    directory: str
    content: str


class IndexRunSummary(TypedDict):
    """Outcome of one index_directory call."""

    root: str
    directory: str
    total_discovered: int
    processed_count: int
    document_count: int


class IndexStatus(TypedDict):
    """Index statistics."""

    path: str
    document_count: int
    directory_count: int
    error_count: int
    last_indexed: str | None
    db_size_mb: float


def _to_hits(results: list[SearchResult]) -> list[SearchHit]:
    return [
        SearchHit(
            id=r.id,
            file_name=r.file_name,
            directory=r.directory,
            extension=r.extension,
        )
        for r in results
    ]


def _resolve_limit(limit: int | None) -> int:
    if limit is None:
        return get_search_limit()
    if limit < 1:
        raise ValueError("limit must be at least 1")
    return limit


# ========== Tool implementations ==========


async def search_documents_tool(
    manager: IndexManager,
    name: str = "",
    content: str = "",
    limit: int | None = None,
) -> list[SearchHit]:
    """Search by file-name prefix and/or a content term (AND-ed)."""
    limit = _resolve_limit(limit)
    results = await asyncio.to_thread(
        manager.search_terms, name, content, limit
    )
    return _to_hits(results)


async def search_query_tool(
    manager: IndexManager,
    query: str,
    limit: int | None = None,
) -> list[SearchHit]:
    """Run a raw FTS5 MATCH expression."""
    limit = _resolve_limit(limit)
    results = await asyncio.to_thread(manager.search, query, limit)
    return _to_hits(results)


async def get_document_tool(
    manager: IndexManager, document_id: str
) -> DocumentDetail:
    """Fetch one document by id (its resolved file path)."""
    document = await asyncio.to_thread(manager.get_document, document_id)
    if document is None:
        raise ValueError(f"Document {document_id} not found in index.")
    return DocumentDetail(
        id=document.id,
        sequence_id=document.sequence_id,
        name=document.name,
        extension=document.extension,
        directory=document.directory,
        content=document.content,
    )


async def index_directory_tool(
    manager: IndexManager,
    path: str,
    extensions: list[str] | None = None,
    label: str | None = None,
) -> IndexRunSummary:
    """Scan a directory into the index."""
    root = Path(path).expanduser()
    try:
        stats = await asyncio.to_thread(
            manager.index_directory, root, extensions, None, label
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        raise ValueError(str(e)) from e

    document_count = await asyncio.to_thread(manager.store.count)
    return IndexRunSummary(
        root=str(root),
        directory=label or root.name or "root",
        total_discovered=stats.total_discovered,
        processed_count=stats.processed_count,
        document_count=document_count,
    )


async def index_status_tool(manager: IndexManager) -> IndexStatus:
    """Report index statistics."""
    stats = await asyncio.to_thread(manager.get_stats)
    return IndexStatus(
        path=str(manager.db_path),
        document_count=stats.document_count,
        directory_count=stats.directory_count,
        error_count=stats.error_count,
        last_indexed=(
            stats.last_indexed.isoformat() if stats.last_indexed else None
        ),
        db_size_mb=round(stats.db_size_mb, 2),
    )


# ========== Server ==========


def build_server(manager: IndexManager) -> FastMCP:
    """
    Create the MCP server bound to an open IndexManager.

    The caller owns the manager and closes it after the server stops.
    """
    mcp = FastMCP("Document Search")

    @mcp.tool
    async def search(
        name: str = "",
        content: str = "",
        limit: int | None = None,
    ) -> list[SearchHit]:
        """
        Search indexed documents.

        Args:
            name: File-name prefix, e.g. "report" matches "report_2024.txt"
            content: Term that must appear in the document text
            limit: Maximum results (default from DOCSEARCH_SEARCH_LIMIT)

        Returns:
            Matching files in indexing order. Empty when both terms are blank.
        """
        return await search_documents_tool(manager, name, content, limit)

    @mcp.tool
    async def search_query(
        query: str, limit: int | None = None
    ) -> list[SearchHit]:
        """
        Search with a raw FTS5 expression.

        Columns are content, name and extension. Examples:
        - content:invoice AND name:2024*
        - content:"disk full" OR content:enospc

        Args:
            query: FTS5 MATCH expression
            limit: Maximum results (default from DOCSEARCH_SEARCH_LIMIT)
        """
        return await search_query_tool(manager, query, limit)

    @mcp.tool
    async def get_document(id: str) -> DocumentDetail:
        """
        Get a single document with its full text.

        Args:
            id: Document id as returned by search (the file's path)
        """
        return await get_document_tool(manager, id)

    @mcp.tool
    async def index_directory(
        path: str,
        extensions: list[str] | None = None,
        label: str | None = None,
    ) -> IndexRunSummary:
        """
        Scan a directory and add its files to the index.

        Scanning the same directory twice stores each file twice.

        Args:
            path: Directory to scan (~ is expanded)
            extensions: Extensions to keep, e.g. ["txt", "md"]
                        (default from DOCSEARCH_EXTENSIONS)
            label: Directory label stored on each document
                   (default: the folder name)
        """
        return await index_directory_tool(manager, path, extensions, label)

    @mcp.tool
    async def index_status() -> IndexStatus:
        """Get document counts, database size and last scan time."""
        return await index_status_tool(manager)

    return mcp
