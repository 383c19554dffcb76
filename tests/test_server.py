"""Tests for MCP server tools.

Tests the 5 MCP tools exposed by server.py:
- search
- search_query
- get_document
- index_directory
- index_status

The tool bodies are exercised through their module-level implementations
against a real IndexManager on a temporary database.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastmcp import Client, FastMCP

from docsearch_mcp.errors import InvalidQueryError
from docsearch_mcp.server import (
    build_server,
    get_document_tool,
    index_directory_tool,
    index_status_tool,
    search_documents_tool,
    search_query_tool,
)


@pytest.fixture
def filled(manager):
    manager.insert_document(
        "/d/report_2024.txt", "report_2024.txt", "error found", "txt", "d"
    )
    manager.insert_document("/d/log.txt", "log.txt", "error again", "txt", "d")
    return manager


class TestBuildServer:
    """Tests for server construction."""

    def test_returns_fastmcp(self, manager):
        assert isinstance(build_server(manager), FastMCP)

    @pytest.mark.asyncio
    async def test_registers_tools(self, manager):
        async with Client(build_server(manager)) as client:
            tools = await client.list_tools()

        assert {tool.name for tool in tools} == {
            "search",
            "search_query",
            "get_document",
            "index_directory",
            "index_status",
        }


class TestSearch:
    """Tests for the search tool."""

    @pytest.mark.asyncio
    async def test_returns_hits(self, filled):
        result = await search_documents_tool(filled, content="error")

        assert result == [
            {
                "id": "/d/report_2024.txt",
                "file_name": "report_2024.txt",
                "directory": "d",
                "extension": "txt",
            },
            {
                "id": "/d/log.txt",
                "file_name": "log.txt",
                "directory": "d",
                "extension": "txt",
            },
        ]

    @pytest.mark.asyncio
    async def test_hits_never_include_content(self, filled):
        result = await search_documents_tool(filled, name="log")
        assert "content" not in result[0]

    @pytest.mark.asyncio
    async def test_blank_terms_return_empty(self, filled):
        assert await search_documents_tool(filled) == []

    @pytest.mark.asyncio
    async def test_default_limit_from_env(self, filled, monkeypatch):
        monkeypatch.setenv("DOCSEARCH_SEARCH_LIMIT", "1")
        result = await search_documents_tool(filled, content="error")
        assert len(result) == 1

    @pytest.mark.asyncio
    async def test_rejects_zero_limit(self, filled):
        with pytest.raises(ValueError, match="limit"):
            await search_documents_tool(filled, content="error", limit=0)

    @pytest.mark.asyncio
    async def test_passes_limit_to_manager(self):
        manager = MagicMock()
        manager.search_terms.return_value = []

        await search_documents_tool(manager, "rep", "err", 7)

        manager.search_terms.assert_called_once_with("rep", "err", 7)


class TestSearchQuery:
    """Tests for the search_query tool."""

    @pytest.mark.asyncio
    async def test_raw_query(self, filled):
        result = await search_query_tool(filled, "content:error AND name:log*")
        assert [hit["file_name"] for hit in result] == ["log.txt"]

    @pytest.mark.asyncio
    async def test_invalid_query_raises(self, filled):
        with pytest.raises(InvalidQueryError):
            await search_query_tool(filled, 'content:"open')


class TestGetDocument:
    """Tests for the get_document tool."""

    @pytest.mark.asyncio
    async def test_returns_content(self, filled):
        result = await get_document_tool(filled, "/d/log.txt")
        assert result["content"] == "error again"
        assert result["name"] == "log.txt"
        assert result["sequence_id"] > 0

    @pytest.mark.asyncio
    async def test_missing_document_raises(self, filled):
        with pytest.raises(ValueError, match="not found"):
            await get_document_tool(filled, "/nope.txt")


class TestIndexDirectory:
    """Tests for the index_directory tool."""

    @pytest.mark.asyncio
    async def test_indexes_directory(self, manager, docs_tree: Path):
        result = await index_directory_tool(
            manager, str(docs_tree), ["txt"], "notes"
        )

        assert result["directory"] == "notes"
        assert result["total_discovered"] == 2
        assert result["processed_count"] == 2
        assert result["document_count"] == 2

    @pytest.mark.asyncio
    async def test_label_defaults_to_folder_name(self, manager, docs_tree):
        result = await index_directory_tool(manager, str(docs_tree), ["md"])
        assert result["directory"] == "docs"

    @pytest.mark.asyncio
    async def test_missing_directory_raises_value_error(
        self, manager, tmp_path: Path
    ):
        with pytest.raises(ValueError, match="not found"):
            await index_directory_tool(manager, str(tmp_path / "missing"))


class TestIndexStatus:
    """Tests for the index_status tool."""

    @pytest.mark.asyncio
    async def test_reports_counts(self, filled):
        result = await index_status_tool(filled)

        assert result["document_count"] == 2
        assert result["directory_count"] == 1
        assert result["error_count"] == 0
        assert result["last_indexed"] is None
        assert result["path"] == str(filled.db_path)

    @pytest.mark.asyncio
    async def test_last_indexed_after_scan(self, manager, docs_tree: Path):
        await index_directory_tool(manager, str(docs_tree), ["txt"])
        result = await index_status_tool(manager)
        assert result["last_indexed"] is not None
