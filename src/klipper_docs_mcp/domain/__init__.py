"""Domain layer - pure value objects with no infrastructure dependencies.

- model: parsed documents, headings and metadata
- search: search options, results and index statistics
"""

from klipper_docs_mcp.domain.model import Difficulty, Document, DocumentHeading, DocumentMetadata, DocumentStore
from klipper_docs_mcp.domain.search import (
    IndexStats,
    SearchFilters,
    SearchMetadata,
    SearchOptions,
    SearchResult,
)


__all__ = [
    "Difficulty",
    "Document",
    "DocumentHeading",
    "DocumentMetadata",
    "DocumentStore",
    "IndexStats",
    "SearchFilters",
    "SearchMetadata",
    "SearchOptions",
    "SearchResult",
]
