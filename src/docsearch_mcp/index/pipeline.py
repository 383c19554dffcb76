"""Directory scanning and ingestion into the document store.

A run walks a directory tree, keeps files whose extension is allowed,
extracts their text and inserts one Document per file:

    NOT_STARTED → SCANNING → INGESTING → COMPLETED

Progress is reported as on_progress(processed, total): once with 0 before
the first file, then once after every file whether it succeeded or not.
Any exception raised while reading, decoding or inserting a file skips
that file and is handed to the optional error sink; the run carries on.
A failing sink is logged and ignored.

Re-running over the same directory inserts every file again. There is no
de-duplication.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from .disk import (
    file_extension,
    matches_extension,
    normalize_extensions,
    walk_directory,
)
from .extract import SuffixExtractor
from .schema import INSERT_SCAN_ERROR_SQL
from .store import Document

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from .disk import FileEntry, FileSystemWalker
    from .extract import TextExtractor
    from .store import DocumentStore

    ErrorSink = Callable[[str, str, str], None]
    ProgressCallback = Callable[[int, int], None]

logger = logging.getLogger(__name__)


class ScanState(Enum):
    """Lifecycle of one ingestion run."""

    NOT_STARTED = "not_started"
    SCANNING = "scanning"
    INGESTING = "ingesting"
    COMPLETED = "completed"


@dataclass
class ScanStats:
    """Counters for one run, used to compute progress."""

    total_discovered: int = 0
    processed_count: int = 0
    indexed_count: int = 0
    indexed_size: int = 0  # characters of extracted text inserted

    @property
    def progress(self) -> float:
        """Fraction of kept files processed (0.0 when nothing was kept)."""
        if self.total_discovered == 0:
            return 0.0
        return self.processed_count / self.total_discovered


class ScanErrorLedger:
    """Error sink that records skipped files in the scan_errors table."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.count = 0

    def __call__(
        self,
        directory: str,
        file_name: str,
        message: str,
        category: str | None = None,
    ) -> None:
        with self.store.transaction() as conn:
            conn.execute(
                INSERT_SCAN_ERROR_SQL,
                (directory, file_name, message, category),
            )
        self.count += 1


class IngestionPipeline:
    """
    Walks a directory and writes each matching file into a DocumentStore.

    Usage:
        pipeline = IngestionPipeline(store)
        stats = pipeline.run(Path("~/notes"), {"txt", "md"},
                             on_progress=lambda done, total: ...)
    """

    def __init__(
        self,
        store: DocumentStore,
        extractor: TextExtractor | None = None,
        walker: FileSystemWalker | None = None,
        error_sink: ErrorSink | None = None,
        on_state: Callable[[ScanState], None] | None = None,
    ):
        """
        Args:
            store: Destination for indexed documents
            extractor: Text extractor (SuffixExtractor if None)
            walker: Recursive directory lister (walk_directory if None)
            error_sink: Optional callback(directory, file_name, message)
                        for files that were skipped
            on_state: Optional callback invoked on every state change
        """
        self.store = store
        self.extractor = extractor or SuffixExtractor()
        self.walker = walker or walk_directory
        self.error_sink = error_sink
        self.on_state = on_state
        self._state = ScanState.NOT_STARTED

    @property
    def state(self) -> ScanState:
        """Current state of the pipeline."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in (ScanState.SCANNING, ScanState.INGESTING)

    def _set_state(self, state: ScanState) -> None:
        self._state = state
        if self.on_state:
            self.on_state(state)

    def discover(self, root: Path, allowed: set[str]) -> list[FileEntry]:
        """
        List the files under ``root`` that the run will ingest.

        Args:
            root: Scan root
            allowed: Normalized extensions (empty accepts everything)

        Returns:
            Kept files in walk order
        """
        return [
            entry
            for entry in self.walker(root)
            if entry.is_file and matches_extension(entry.name, allowed)
        ]

    def run(
        self,
        root: Path,
        extensions: Iterable[str] | None = None,
        on_progress: ProgressCallback | None = None,
        directory: str | None = None,
    ) -> ScanStats:
        """
        Index every matching file under ``root``.

        Args:
            root: Directory to scan
            extensions: Extensions to keep, e.g. {"txt", ".MD"}; empty or
                        None keeps every file
            on_progress: Optional callback(processed, total)
            directory: Label stored as each document's directory
                       (defaults to the root folder's name)

        Returns:
            ScanStats for the finished run

        Raises:
            RuntimeError: If a run is already in progress
        """
        if self.is_running:
            raise RuntimeError("An ingestion run is already in progress")

        root = Path(root)
        label = directory or root.name or "root"
        allowed = normalize_extensions(extensions)

        try:
            self._set_state(ScanState.SCANNING)
            files = self.discover(root, allowed)
            stats = ScanStats(total_discovered=len(files))

            logger.info(
                "Indexing %d files under %s (extensions: %s)",
                stats.total_discovered,
                root,
                ", ".join(sorted(allowed)) or "all",
            )

            self._set_state(ScanState.INGESTING)
            if on_progress:
                on_progress(0, stats.total_discovered)

            for entry in files:
                content = self._ingest(entry, label)
                if content is not None:
                    stats.indexed_count += 1
                    stats.indexed_size += len(content)
                stats.processed_count += 1
                if on_progress:
                    on_progress(stats.processed_count, stats.total_discovered)

        except BaseException:
            self._set_state(ScanState.NOT_STARTED)
            raise

        self._set_state(ScanState.COMPLETED)
        logger.info(
            "Finished indexing %s: %d of %d files indexed",
            root,
            stats.indexed_count,
            stats.processed_count,
        )
        return stats

    def _ingest(self, entry: FileEntry, label: str) -> str | None:
        """Extract and insert one file. Returns the text, None if skipped."""
        try:
            content = self.extractor.extract(entry) or ""
            self.store.insert(
                Document(
                    id=entry.stable_id,
                    name=entry.name,
                    extension=file_extension(entry.name),
                    directory=label,
                    content=content,
                )
            )
        except Exception as e:
            logger.debug("Skipping %s: %s", entry.path, e)
            self._report(label, entry.name, e)
            return None
        return content

    def _report(
        self, directory: str, file_name: str, error: Exception
    ) -> None:
        if self.error_sink is None:
            return
        try:
            if isinstance(self.error_sink, ScanErrorLedger):
                self.error_sink(
                    directory, file_name, str(error), type(error).__name__
                )
            else:
                self.error_sink(directory, file_name, str(error))
        except Exception as e:
            logger.warning("Could not record error for %s: %s", file_name, e)
