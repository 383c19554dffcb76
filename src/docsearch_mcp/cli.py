"""Command-line interface for docsearch-mcp.

Provides commands for:
- index: Scan a directory into the search index
- search: Query the index from the terminal
- status: Show index statistics
- errors: List files skipped by recent scans
- rebuild: Rebuild the FTS index from stored documents
- serve: Run the MCP server (default)

Usage:
    docsearch-mcp                          # Run MCP server (default)
    docsearch-mcp serve                    # Run MCP server explicitly
    docsearch-mcp index ~/notes --ext md   # Scan a directory
    docsearch-mcp search --name report     # File-name prefix search
    docsearch-mcp status                   # Show index status
"""

import logging
import sys
import time
from pathlib import Path
from typing import Annotated

import cyclopts

from .config import get_index_path, get_search_limit

app = cyclopts.App(
    name="docsearch-mcp",
    help="Local document search MCP server with an SQLite FTS5 index.",
)

# settings key holding the extensions used by the last `index` run
LAST_EXTENSIONS_SETTING = "last_extensions"


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr)


def _format_size(size_mb: float) -> str:
    """Format file size for display."""
    if size_mb < 1:
        return f"{size_mb * 1024:.1f} KB"
    return f"{size_mb:.1f} MB"


def _format_time(seconds: float) -> str:
    """Format duration for display."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"


def _progress_bar(current: int, total: int, width: int = 40) -> str:
    """Create a progress bar string."""
    if total == 0:
        return f"[{'-' * width}] 100%"

    pct = min(current / total, 1.0)
    filled = int(width * pct)
    bar = "=" * filled + "-" * (width - filled)
    return f"[{bar}] {pct * 100:.0f}%"


def _split_extensions(values: list[str] | None) -> list[str] | None:
    """Accept both `--ext txt --ext md` and `--ext txt,md`."""
    if values is None:
        return None
    return [part for value in values for part in value.split(",")]


def _open_manager():
    from .index import IndexManager

    return IndexManager().open()


def _require_index() -> None:
    if not get_index_path().exists():
        print("No index found.")
        print(f"Expected location: {get_index_path()}")
        print()
        print("Run 'docsearch-mcp index <directory>' to build the index.")
        sys.exit(1)


def _run_serve() -> None:
    """Internal function to run the MCP server."""
    from .server import build_server

    manager = _open_manager()
    try:
        stats = manager.get_stats()
        print(
            f"Serving {stats.document_count:,} documents "
            f"from {manager.db_path}",
            file=sys.stderr,
        )
        build_server(manager).run()
    finally:
        manager.close()


@app.command
def serve(
    verbose: Annotated[
        bool,
        cyclopts.Parameter(
            name=["--verbose", "-v"],
            help="Enable verbose output",
        ),
    ] = False,
) -> None:
    """
    Run the MCP server.

    This is the default command when no subcommand is specified.
    The server provides document search and indexing tools to MCP clients.
    """
    _configure_logging(verbose)
    _run_serve()


@app.command
def index(
    root: Path,
    ext: Annotated[
        list[str] | None,
        cyclopts.Parameter(
            name=["--ext", "-e"],
            help="Extension to index (repeatable or comma separated)",
        ),
    ] = None,
    label: Annotated[
        str | None,
        cyclopts.Parameter(
            name=["--label", "-l"],
            help="Directory label stored on each document",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        cyclopts.Parameter(name=["--verbose", "-v"], help="Show progress"),
    ] = False,
) -> None:
    """
    Scan a directory into the search index.

    Every matching file under ROOT is read and indexed. Files that cannot
    be read or decoded are skipped and listed by 'docsearch-mcp errors'.
    Without --ext the extensions from the previous run are reused
    (DOCSEARCH_EXTENSIONS on the first run).
    """
    _configure_logging(verbose)
    root = root.expanduser()

    print(f"Indexing {root}...")
    print(f"Index location: {get_index_path()}")
    print()

    start = time.time()

    def progress(current: int, total: int) -> None:
        bar = _progress_bar(current, total)
        print(f"\r{bar} {current:,}/{total:,} files", end="", flush=True)

    try:
        manager = _open_manager()
    except Exception as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        extensions = _split_extensions(ext)
        if extensions is None:
            saved = manager.get_setting(LAST_EXTENSIONS_SETTING)
            if saved is not None:
                extensions = saved.split(",")

        stats = manager.index_directory(
            root,
            extensions,
            on_progress=progress if verbose else None,
            directory=label,
        )
        if extensions is not None:
            manager.set_setting(LAST_EXTENSIONS_SETTING, ",".join(extensions))
        elapsed = time.time() - start

        if verbose:
            print()  # Newline after progress

        after = manager.get_stats()
        skipped = stats.processed_count - stats.indexed_count

        print()
        print(
            f"✓ Indexed {stats.indexed_count:,} of "
            f"{stats.total_discovered:,} files in {_format_time(elapsed)}"
        )
        if skipped:
            print(f"  Skipped: {skipped} (see 'docsearch-mcp errors')")
        print(f"  Documents: {after.document_count:,}")
        print(f"  Database size: {_format_size(after.db_size_mb)}")

    except (FileNotFoundError, NotADirectoryError) as e:
        print(f"\n✗ Not found: {e}", file=sys.stderr)
        sys.exit(1)

    except Exception as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    finally:
        manager.close()


@app.command
def search(
    name: Annotated[
        str,
        cyclopts.Parameter(
            name=["--name", "-n"], help="File-name prefix to match"
        ),
    ] = "",
    content: Annotated[
        str,
        cyclopts.Parameter(
            name=["--content", "-c"], help="Term in the document text"
        ),
    ] = "",
    query: Annotated[
        str | None,
        cyclopts.Parameter(
            name=["--query", "-q"],
            help="Raw FTS5 expression (overrides --name/--content)",
        ),
    ] = None,
    limit: Annotated[
        int | None,
        cyclopts.Parameter(name=["--limit"], help="Maximum results"),
    ] = None,
) -> None:
    """
    Search the index.

    --name and --content are combined with AND. Results are listed in the
    order the files were indexed.
    """
    if query is None and not name and not content:
        print("Nothing to search for: use --name, --content or --query")
        sys.exit(1)

    _require_index()
    limit = limit or get_search_limit()

    manager = _open_manager()
    try:
        if query is not None:
            results = manager.search(query, limit=limit)
        else:
            results = manager.search_terms(name, content, limit=limit)
    except Exception as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        manager.close()

    if not results:
        print("No matches.")
        return

    for result in results:
        print(f"{result.directory}/{result.file_name}  {result.id}")
    print()
    print(f"{len(results)} result(s)")


@app.command
def status(
    verbose: Annotated[
        bool,
        cyclopts.Parameter(
            name=["--verbose", "-v"],
            help="Enable verbose output",
        ),
    ] = False,
) -> None:
    """
    Show index statistics.

    Displays:
    - Document and directory counts
    - Skipped file count
    - Last scan time
    - Database file size
    """
    _configure_logging(verbose)
    _require_index()

    manager = _open_manager()
    try:
        stats = manager.get_stats()
        extensions = manager.get_setting(LAST_EXTENSIONS_SETTING)
    finally:
        manager.close()

    print("Docsearch MCP Index Status")
    print("=" * 40)
    print(f"Location:     {get_index_path()}")
    print(f"Documents:    {stats.document_count:,}")
    print(f"Directories:  {stats.directory_count}")
    print(f"Skipped:      {stats.error_count}")
    print(f"Database:     {_format_size(stats.db_size_mb)}")
    if extensions:
        print(f"Extensions:   {extensions}")
    print()

    if stats.last_indexed:
        print(
            "Last scan:    "
            f"{stats.last_indexed.strftime('%Y-%m-%d %H:%M:%S')}"
        )
    else:
        print("Last scan:    Never")
        print()
        print("⚠ No scan recorded. Run 'docsearch-mcp index <directory>'.")


@app.command
def errors(
    limit: Annotated[
        int,
        cyclopts.Parameter(name=["--limit"], help="Number of entries"),
    ] = 20,
) -> None:
    """List files that recent scans could not index."""
    _require_index()

    manager = _open_manager()
    try:
        entries = manager.recent_errors(limit)
    finally:
        manager.close()

    if not entries:
        print("No scan errors recorded.")
        return

    for entry in entries:
        print(f"{entry.recorded_at}  {entry.directory}/{entry.file_name}")
        print(f"    {entry.message}")


@app.command
def rebuild(
    verbose: Annotated[
        bool,
        cyclopts.Parameter(name=["--verbose", "-v"], help="Show progress"),
    ] = False,
) -> None:
    """
    Rebuild the full-text index.

    Recreates every FTS entry from the stored documents. Files are not
    re-read from disk.
    """
    _configure_logging(verbose)
    _require_index()

    print("Rebuilding full-text index...")
    start = time.time()

    manager = _open_manager()
    try:
        count = manager.rebuild()
        elapsed = time.time() - start
        print(f"✓ Rebuilt {count:,} entries in {_format_time(elapsed)}")

    except Exception as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    finally:
        manager.close()


@app.default
def default_handler(
    verbose: Annotated[
        bool,
        cyclopts.Parameter(
            name=["--verbose", "-v"],
            help="Enable verbose output",
        ),
    ] = False,
) -> None:
    """Run the MCP server (default when no command specified)."""
    _configure_logging(verbose)
    _run_serve()


def main() -> None:
    """Entry point for the CLI."""
    app()
