"""Text extraction for ingested files.

A TextExtractor turns a FileEntry into UTF-8 text or raises
ExtractionError. The ingestion pipeline skips files whose extraction
fails.

Extractors:
- PlainTextExtractor: strict UTF-8 (BOM tolerated), size capped
- HtmlTextExtractor: visible text of an HTML page via BeautifulSoup
- SuffixExtractor: picks one of the above by file extension
"""

from __future__ import annotations

import re
import warnings
from typing import TYPE_CHECKING, Protocol

from ..config import get_max_file_bytes
from ..errors import ExtractionError
from .disk import file_extension

if TYPE_CHECKING:
    from .disk import FileEntry

HTML_EXTENSIONS = frozenset({"html", "htm", "xhtml"})


class TextExtractor(Protocol):
    """Anything that can turn a file into text."""

    def extract(self, entry: FileEntry) -> str:
        """Return the file's text or raise ExtractionError."""
        ...


class PlainTextExtractor:
    """Reads a file as UTF-8 text."""

    def __init__(self, max_bytes: int | None = None):
        """
        Args:
            max_bytes: Largest file to read (config default if None)
        """
        if max_bytes is None:
            max_bytes = get_max_file_bytes()
        self.max_bytes = max_bytes

    def read_bytes(self, entry: FileEntry) -> bytes:
        try:
            size = entry.path.stat().st_size
            if size > self.max_bytes:
                raise ExtractionError(
                    entry.path,
                    f"file is {size} bytes, limit is {self.max_bytes}",
                )
            return entry.path.read_bytes()
        except OSError as e:
            raise ExtractionError(entry.path, f"cannot read: {e}") from e

    def decode(self, entry: FileEntry, data: bytes) -> str:
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError(entry.path, f"not UTF-8 text: {e}") from e

    def extract(self, entry: FileEntry) -> str:
        return self.decode(entry, self.read_bytes(entry))


class HtmlTextExtractor(PlainTextExtractor):
    """Extracts the visible text of an HTML document."""

    def extract(self, entry: FileEntry) -> str:
        html = super().extract(entry)
        return strip_html(html)


def strip_html(html: str) -> str:
    """
    HTML to text conversion using BeautifulSoup.

    Script and style elements are dropped; runs of blank lines and spaces
    are collapsed.
    """
    from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(html, "html.parser")

    for element in soup(["script", "style"]):
        element.decompose()

    text = soup.get_text(separator="\n", strip=True)

    text = re.sub(r"\n\s*\n", "\n\n", text)
    text = re.sub(r" +", " ", text)

    return text.strip()


class SuffixExtractor:
    """Dispatches to the HTML or plain-text extractor by extension."""

    def __init__(self, max_bytes: int | None = None):
        self.plain = PlainTextExtractor(max_bytes)
        self.html = HtmlTextExtractor(max_bytes)

    def extract(self, entry: FileEntry) -> str:
        if file_extension(entry.name) in HTML_EXTENSIONS:
            return self.html.extract(entry)
        return self.plain.extract(entry)
