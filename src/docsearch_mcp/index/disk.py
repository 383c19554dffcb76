"""Directory walking for document ingestion.

Provides:
- FileEntry: one filesystem entry as seen by the ingestion pipeline
- walk_directory(): default recursive walker
- file_extension() / normalize_extensions(): extension matching rules

Extension rules:
    "Report.TXT"   → "txt"
    "archive.tar.gz" → "gz"   (text after the last dot)
    "Makefile"     → ""       (no dot, no extension)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    FileSystemWalker = Callable[[Path], Iterable["FileEntry"]]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileEntry:
    """A file or directory found under a scan root."""

    path: Path
    name: str
    is_dir: bool
    is_file: bool
    stable_id: str

    @classmethod
    def from_path(cls, path: Path) -> FileEntry:
        """Build an entry for ``path``; stable_id is the resolved path."""
        return cls(
            path=path,
            name=path.name,
            is_dir=path.is_dir(),
            is_file=path.is_file(),
            stable_id=str(path.resolve()),
        )


def file_extension(name: str) -> str:
    """
    Return the lower-cased text after the last dot of a file name.

    Args:
        name: File base name

    Returns:
        Extension without the dot, or "" if the name has no dot
    """
    _, dot, ext = name.rpartition(".")
    if not dot:
        return ""
    return ext.lower()


def normalize_extensions(extensions: Iterable[str] | None) -> set[str]:
    """
    Normalize a user-supplied extension list.

    Trims whitespace, lower-cases, strips one leading dot and drops empty
    entries. An empty result means "accept every file".

    Args:
        extensions: e.g. [".TXT", " md ", ""]

    Returns:
        e.g. {"txt", "md"}
    """
    normalized: set[str] = set()
    for ext in extensions or ():
        ext = ext.strip().lower()
        ext = ext.removeprefix(".")
        if ext:
            normalized.add(ext)
    return normalized


def matches_extension(name: str, allowed: set[str]) -> bool:
    """True if ``allowed`` is empty or contains the name's extension."""
    return not allowed or file_extension(name) in allowed


def walk_directory(root: Path) -> Iterator[FileEntry]:
    """
    Recursively list every entry under ``root``.

    Directories are yielded before their contents and entries within a
    directory are sorted by name, so a given tree always walks in the same
    order. Symlinked directories are listed but not descended into.
    Directories that cannot be read are logged and skipped.

    Args:
        root: Directory to walk

    Yields:
        FileEntry for each file and directory below root
    """
    try:
        children = sorted(root.iterdir())
    except OSError as e:
        logger.warning("Cannot list %s: %s", root, e)
        return

    for child in children:
        try:
            entry = FileEntry.from_path(child)
        except OSError as e:
            logger.debug("Cannot stat %s: %s", child, e)
            continue

        yield entry

        if entry.is_dir and not child.is_symlink():
            yield from walk_directory(child)
