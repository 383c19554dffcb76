"""Tests for FTS5 search over indexed documents."""

from __future__ import annotations

import sqlite3

import pytest

from docsearch_mcp.builders import build_query
from docsearch_mcp.errors import InvalidQueryError, StorageError
from docsearch_mcp.index.search import (
    SearchResult,
    count_matches,
    search_documents,
)
from docsearch_mcp.index.store import Document


class TestSearchDocuments:
    """Tests for search_documents()."""

    def test_round_trip(self, store):
        store.insert(
            Document("/d/notes.txt", "notes.txt", "txt", "d", "hello world")
        )
        results = search_documents(store.connection, build_query("", "hello"))
        assert results == [
            SearchResult(
                id="/d/notes.txt",
                file_name="notes.txt",
                directory="d",
                extension="txt",
            )
        ]

    def test_name_prefix(self, populated_store):
        results = search_documents(
            populated_store.connection, build_query("report", "")
        )
        assert [r.file_name for r in results] == [
            "report_2024.txt",
            "report_draft.md",
        ]

    def test_name_and_content_are_anded(self, populated_store):
        results = search_documents(
            populated_store.connection, build_query("report", "error")
        )
        assert [r.id for r in results] == ["/docs/report_2024.txt"]

    def test_results_in_indexing_order(self, populated_store):
        results = search_documents(
            populated_store.connection, "content:error"
        )
        assert [r.id for r in results] == [
            "/docs/report_2024.txt",
            "/web/index.html",
        ]

    def test_respects_limit(self, populated_store):
        results = search_documents(
            populated_store.connection, "content:error", limit=1
        )
        assert len(results) == 1
        assert results[0].id == "/docs/report_2024.txt"

    def test_content_is_case_insensitive(self, populated_store):
        results = search_documents(
            populated_store.connection, "content:QUARTERLY"
        )
        assert len(results) == 1

    def test_extension_column(self, populated_store):
        results = search_documents(populated_store.connection, "extension:md")
        assert [r.file_name for r in results] == ["report_draft.md"]

    def test_no_results(self, populated_store):
        results = search_documents(
            populated_store.connection, "content:zebra"
        )
        assert results == []

    def test_duplicates_are_both_returned(self, store):
        doc = Document("/d/a.txt", "a.txt", "txt", "d", "same text")
        store.insert(doc)
        store.insert(Document("/d/a.txt", "a.txt", "txt", "d", "same text"))
        results = search_documents(store.connection, "content:same")
        assert [r.id for r in results] == ["/d/a.txt", "/d/a.txt"]

    def test_deleted_document_is_not_found(self, populated_store):
        doc = populated_store.get_by_id("/docs/notes.txt")
        populated_store.delete(doc.sequence_id)
        assert search_documents(
            populated_store.connection, "content:hello"
        ) == []

    @pytest.mark.parametrize("query", [None, "", "   "])
    def test_empty_query_raises(self, populated_store, query):
        with pytest.raises(InvalidQueryError):
            search_documents(populated_store.connection, query)

    @pytest.mark.parametrize(
        "query",
        ['content:"unterminated', "content:(error", "bogus:term", "AND"],
    )
    def test_malformed_query_raises(self, populated_store, query):
        with pytest.raises(InvalidQueryError):
            search_documents(populated_store.connection, query)

    def test_invalid_query_is_value_error(self, populated_store):
        with pytest.raises(ValueError):
            search_documents(populated_store.connection, "content:(")

    def test_other_database_errors_are_storage_errors(self):
        conn = sqlite3.connect(":memory:")
        conn.row_factory = sqlite3.Row
        try:
            with pytest.raises(StorageError):
                search_documents(conn, "content:x")
        finally:
            conn.close()


class TestCountMatches:
    """Tests for count_matches()."""

    def test_count_basic_query(self, populated_store):
        assert count_matches(populated_store.connection, "content:error") == 2

    def test_count_no_results(self, populated_store):
        assert count_matches(populated_store.connection, "content:zebra") == 0

    def test_empty_query_raises(self, populated_store):
        with pytest.raises(InvalidQueryError):
            count_matches(populated_store.connection, "")
