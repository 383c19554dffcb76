"""Docsearch MCP - Local document search over an SQLite FTS5 index.

Features:
- Recursive directory scanning with extension filtering
- Plain text and HTML extraction
- File-name prefix and content search via FTS5

Usage:
    docsearch-mcp                    # Run MCP server (default)
    docsearch-mcp index ~/notes      # Scan a directory into the index
    docsearch-mcp search -c invoice  # Search from the terminal
    docsearch-mcp status             # Show index statistics
"""

from .cli import main
from .server import build_server

__all__ = ["build_server", "main"]
