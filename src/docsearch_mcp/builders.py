"""
FTS5 MATCH expression builders for document search.

Search forms collect a file-name term and a content term separately.
These builders turn them into one MATCH expression over the
documents_fts columns (content, name, extension).

Terms are inserted verbatim. A term containing FTS5 syntax (AND, OR,
quotes, column filters) changes the meaning of the query; malformed
results are reported by the search executor as InvalidQueryError.
"""

from dataclasses import dataclass, field


@dataclass
class MatchQueryBuilder:
    """
    Builder for constructing FTS5 MATCH expressions.

    Blank terms are ignored. Clauses are joined with AND in the order
    they were added.

    Example:
        query = (MatchQueryBuilder()
            .content("error")
            .name_prefix("report")
            .build())
        # "content:error AND name:report*"
    """

    _clauses: list[str] = field(default_factory=list)

    def content(self, term: str | None) -> "MatchQueryBuilder":
        """Restrict the content column to documents containing ``term``."""
        return self._add("content", term)

    def name_prefix(self, term: str | None) -> "MatchQueryBuilder":
        """Restrict the name column to tokens starting with ``term``."""
        return self._add("name", term, prefix=True)

    def extension(self, term: str | None) -> "MatchQueryBuilder":
        """Restrict the extension column to ``term``."""
        return self._add("extension", term)

    def _add(
        self, column: str, term: str | None, prefix: bool = False
    ) -> "MatchQueryBuilder":
        if term is None or not term.strip():
            return self
        suffix = "*" if prefix else ""
        self._clauses.append(f"{column}:{term}{suffix}")
        return self

    def build(self) -> str | None:
        """
        Generate the MATCH expression.

        Returns:
            The expression, or None when every term was blank. None means
            there is nothing to search for, not "match everything".
        """
        if not self._clauses:
            return None
        return " AND ".join(self._clauses)


def build_query(name_term: str | None, content_term: str | None) -> str | None:
    """
    Build the MATCH expression for a name/content search form.

    Args:
        name_term: File name prefix (blank to ignore)
        content_term: Content term (blank to ignore)

    Returns:
        e.g. ``"content:error AND name:report*"``, or None if both are blank
    """
    builder = MatchQueryBuilder().content(content_term)
    return builder.name_prefix(name_term).build()
