"""FTS5 full-text index over local text documents.

This module provides:
- IndexManager: Main interface for scanning, searching and maintenance
- DocumentStore: Content store kept in lockstep with the FTS5 index
- IngestionPipeline: Directory walk, extension filter and text extraction
- FTS5 search in indexing order (no ranking)
"""

from .manager import IndexManager, IndexStats, ScanError
from .pipeline import IngestionPipeline, ScanState, ScanStats
from .search import SearchResult
from .store import Document, DocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "IndexManager",
    "IndexStats",
    "IngestionPipeline",
    "ScanError",
    "ScanState",
    "ScanStats",
    "SearchResult",
]
