"""Tests for text extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsearch_mcp.errors import ExtractionError
from docsearch_mcp.index.disk import FileEntry
from docsearch_mcp.index.extract import (
    HtmlTextExtractor,
    PlainTextExtractor,
    SuffixExtractor,
    strip_html,
)


def _entry(path: Path) -> FileEntry:
    return FileEntry.from_path(path)


class TestPlainTextExtractor:
    """Tests for UTF-8 text extraction."""

    def test_reads_utf8(self, tmp_path: Path):
        path = tmp_path / "a.txt"
        path.write_text("héllo wörld", encoding="utf-8")
        assert PlainTextExtractor().extract(_entry(path)) == "héllo wörld"

    def test_strips_bom(self, tmp_path: Path):
        path = tmp_path / "bom.txt"
        path.write_bytes(b"\xef\xbb\xbfhello")
        assert PlainTextExtractor().extract(_entry(path)) == "hello"

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.txt"
        path.write_bytes(b"")
        assert PlainTextExtractor().extract(_entry(path)) == ""

    def test_invalid_utf8_raises(self, tmp_path: Path):
        path = tmp_path / "latin1.txt"
        path.write_bytes(b"caf\xe9")
        with pytest.raises(ExtractionError) as exc_info:
            PlainTextExtractor().extract(_entry(path))
        assert exc_info.value.path == path
        assert "UTF-8" in exc_info.value.message

    def test_oversized_file_raises(self, tmp_path: Path):
        path = tmp_path / "big.txt"
        path.write_text("x" * 100)
        with pytest.raises(ExtractionError, match="limit"):
            PlainTextExtractor(max_bytes=10).extract(_entry(path))

    def test_missing_file_raises(self, tmp_path: Path):
        path = tmp_path / "gone.txt"
        path.write_text("x")
        entry = _entry(path)
        path.unlink()
        with pytest.raises(ExtractionError, match="cannot read"):
            PlainTextExtractor().extract(entry)

    def test_default_limit_from_env(self, monkeypatch):
        monkeypatch.setenv("DOCSEARCH_MAX_FILE_MB", "1")
        assert PlainTextExtractor().max_bytes == 1024 * 1024


class TestStripHtml:
    """Tests for strip_html()."""

    def test_removes_tags(self):
        assert strip_html("<p>Hello <b>world</b></p>") == "Hello\nworld"

    def test_drops_script_and_style(self):
        html = (
            "<style>body { color: red }</style>"
            "<p>visible</p><script>alert('x')</script>"
        )
        assert strip_html(html) == "visible"

    def test_collapses_blank_lines(self):
        text = strip_html("<p>one</p>\n\n\n<p>two</p>")
        assert "\n\n\n" not in text
        assert "one" in text and "two" in text

    def test_plain_text_passes_through(self):
        assert strip_html("no markup here") == "no markup here"


class TestHtmlTextExtractor:
    """Tests for HTML file extraction."""

    def test_extracts_visible_text(self, tmp_path: Path):
        path = tmp_path / "page.html"
        path.write_text(
            "<html><body><h1>Title</h1><p>Body text</p></body></html>",
            encoding="utf-8",
        )
        text = HtmlTextExtractor().extract(_entry(path))
        assert "Title" in text
        assert "Body text" in text
        assert "<h1>" not in text


class TestSuffixExtractor:
    """Tests for extension dispatch."""

    @pytest.mark.parametrize("name", ["page.html", "page.HTM", "page.xhtml"])
    def test_html_extensions_are_stripped(self, tmp_path: Path, name):
        path = tmp_path / name
        path.write_text("<p>hi</p>", encoding="utf-8")
        assert SuffixExtractor().extract(_entry(path)) == "hi"

    def test_other_extensions_are_plain(self, tmp_path: Path):
        path = tmp_path / "snippet.md"
        path.write_text("<p>hi</p>", encoding="utf-8")
        assert SuffixExtractor().extract(_entry(path)) == "<p>hi</p>"

    def test_size_limit_applies_to_both(self):
        extractor = SuffixExtractor(max_bytes=5)
        assert extractor.plain.max_bytes == 5
        assert extractor.html.max_bytes == 5
