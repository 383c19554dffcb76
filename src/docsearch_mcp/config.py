"""Configuration for docsearch-mcp."""

import os
from pathlib import Path

# Default index location
DEFAULT_INDEX_PATH = Path.home() / ".docsearch-mcp" / "index.db"

# Extensions indexed when none are given explicitly
DEFAULT_EXTENSIONS = ("txt",)


def get_index_path() -> Path:
    """
    Get the index database path.

    Set DOCSEARCH_INDEX_PATH to customize the location.
    Defaults to ~/.docsearch-mcp/index.db

    Returns:
        Path to the index database file.
    """
    env_path = os.environ.get("DOCSEARCH_INDEX_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_INDEX_PATH


def get_default_extensions() -> set[str]:
    """
    Get the file extensions indexed when a scan names none.

    Set DOCSEARCH_EXTENSIONS to a comma-separated list (e.g. "txt,md,html").
    An empty value means "index every file".
    Defaults to "txt".

    Returns:
        Set of extensions as written in the variable (normalized later).
    """
    env_val = os.environ.get("DOCSEARCH_EXTENSIONS")
    if env_val is not None:
        return {e.strip() for e in env_val.split(",") if e.strip()}
    return set(DEFAULT_EXTENSIONS)


def get_max_file_bytes() -> int:
    """
    Get the largest file the extractors will read.

    Set DOCSEARCH_MAX_FILE_MB to customize.
    Defaults to 25 MB.

    Returns:
        Maximum file size in bytes.
    """
    mb = float(os.environ.get("DOCSEARCH_MAX_FILE_MB", "25"))
    return int(mb * 1024 * 1024)


def get_search_limit() -> int:
    """
    Get the default number of search results returned to clients.

    Set DOCSEARCH_SEARCH_LIMIT to customize.
    Defaults to 50.

    Returns:
        Maximum results per search.
    """
    return int(os.environ.get("DOCSEARCH_SEARCH_LIMIT", "50"))
