"""Domain models for search requests and responses.

These are the per-request values handed from the search engine to the MCP
layer. None of them is persisted.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from klipper_docs_mcp.domain.model import Document


class SearchOptions(BaseModel):
    """Caller-supplied knobs for a single search call."""

    model_config = ConfigDict(frozen=True)

    limit: int | None = Field(default=None, ge=1, description="Maximum results; None uses the configured default")
    section: str | None = Field(default=None, description="Exact-match filter on document section")
    include_content: bool = Field(default=True, description="Keep full document bodies in results")


class SearchFilters(BaseModel):
    """Filters that were active for a search."""

    model_config = ConfigDict(frozen=True)

    section: str | None = None


class SearchMetadata(BaseModel):
    """Query-level facts attached to every result.

    ``total_results`` counts matches after section and score filtering but
    before truncation to the limit.
    """

    model_config = ConfigDict(frozen=True)

    query: str
    search_time_ms: float = Field(ge=0.0)
    total_results: int = Field(ge=0)
    filters: SearchFilters | None = None


class SearchResult(BaseModel):
    """Value object for a single ranked hit."""

    model_config = ConfigDict(frozen=True)

    document: Document
    score: float = Field(ge=0.0)
    snippet: str
    highlights: list[str] = Field(default_factory=list)
    metadata: SearchMetadata


class IndexStats(BaseModel):
    """Aggregate counts over the document store.

    ``last_indexed`` is None until the first successful build.
    """

    model_config = ConfigDict(frozen=True)

    total_documents: int = 0
    total_words: int = 0
    sections: list[str] = Field(default_factory=list)
    last_indexed: datetime | None = None
