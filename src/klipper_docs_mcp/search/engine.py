"""Query engine over the active documentation index.

The engine owns exactly one reference to an immutable `_IndexSnapshot`.
`build_index` constructs a complete replacement and then rebinds that single
attribute, so a concurrent `search` either sees the old snapshot or the new
one. Builds are serialised with a lock; queries never take it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import threading
import time
from types import MappingProxyType

from klipper_docs_mcp.config import Settings
from klipper_docs_mcp.domain.model import Document, DocumentStore
from klipper_docs_mcp.domain.search import (
    IndexStats,
    SearchFilters,
    SearchMetadata,
    SearchOptions,
    SearchResult,
)
from klipper_docs_mcp.errors import IndexBuildError, IndexNotReadyError
from klipper_docs_mcp.observability.metrics import INDEX_BUILD_SECONDS, INDEX_DOC_COUNT, SEARCH_LATENCY
from klipper_docs_mcp.search.bm25_engine import BM25SearchEngine, RankedDocument
from klipper_docs_mcp.search.indexer import InvertedIndex, build_index
from klipper_docs_mcp.search.schema import Schema, create_default_schema
from klipper_docs_mcp.search.snippet import DEFAULT_WINDOW_STEP, build_snippet, query_words


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _IndexSnapshot:
    index: InvertedIndex
    documents: DocumentStore
    last_indexed: datetime


def compute_highlights(matched_terms: frozenset[str], words: list[str]) -> list[str]:
    """Matched index terms that overlap a query word in either direction.

    >>> compute_highlights(frozenset({"extruder", "heater"}), ["extrud"])
    ['extruder']
    """

    return sorted(term for term in matched_terms if any(word in term or term in word for word in words))


class SearchEngine:
    """BM25F search, document lookup and stats over one document store."""

    def __init__(self, settings: Settings | None = None, *, schema: Schema | None = None) -> None:
        settings = settings or Settings()
        self.max_results = settings.search_max_results
        self.snippet_length = settings.search_snippet_length
        self.min_score = settings.search_min_score
        self._schema = schema or create_default_schema()
        self._scorer = BM25SearchEngine()
        self._snapshot: _IndexSnapshot | None = None
        self._build_lock = threading.Lock()

    def is_ready(self) -> bool:
        return self._snapshot is not None

    def build_index(self, documents: DocumentStore) -> None:
        """Index ``documents`` and atomically replace the active snapshot.

        Raises:
            IndexBuildError: construction failed; the previous snapshot stays
                active and the original exception is chained as the cause.
        """

        with self._build_lock:
            logger.info("Building search index for %d documents", len(documents))
            start = time.perf_counter()
            try:
                store = MappingProxyType(dict(documents))
                index = build_index(store, self._schema)
            except Exception as exc:
                logger.error("Index build failed: %s", exc)
                raise IndexBuildError(
                    f"Failed to build search index: {exc}",
                    context="SearchEngine.build_index",
                    details={"document_count": len(documents)},
                ) from exc

            self._snapshot = _IndexSnapshot(
                index=index,
                documents=store,
                last_indexed=datetime.now(timezone.utc),
            )
            elapsed = time.perf_counter() - start

        INDEX_BUILD_SECONDS.observe(elapsed)
        INDEX_DOC_COUNT.set(len(store))
        logger.info("Search index built: %d documents in %.1fms", len(store), elapsed * 1000)

    def _require_snapshot(self) -> _IndexSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise IndexNotReadyError(
                "Search index not initialized. Call build_index() first.",
                context="SearchEngine.search",
            )
        return snapshot

    def search(self, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        """Rank documents for ``query``.

        Empty or nonsense queries return an empty list. ``total_results`` in
        each result's metadata counts every match that survived the section
        and score filters, including those cut off by the limit.

        Raises:
            IndexNotReadyError: no index has been built yet.
        """

        options = options or SearchOptions()
        snapshot = self._require_snapshot()
        start = time.perf_counter()

        query_tokens = self._scorer.tokenize_query(snapshot.index, query)
        ranked: list[RankedDocument] = self._scorer.score(snapshot.index, query_tokens)

        if options.section:
            ranked = [
                entry
                for entry in ranked
                if (doc := snapshot.documents.get(entry.doc_id)) is not None and doc.section == options.section
            ]
        ranked = [entry for entry in ranked if entry.score >= self.min_score]

        total_results = len(ranked)
        limit = options.limit or self.max_results
        ranked = ranked[:limit]

        words = query_words(query)
        filters = SearchFilters(section=options.section) if options.section else None

        hits: list[tuple[RankedDocument, Document, str]] = []
        for entry in ranked:
            document = snapshot.documents[entry.doc_id]
            snippet = build_snippet(document.content, words, self.snippet_length, DEFAULT_WINDOW_STEP)
            if not options.include_content:
                document = document.model_copy(update={"content": ""})
            hits.append((entry, document, snippet))

        elapsed = time.perf_counter() - start
        metadata = SearchMetadata(
            query=query,
            search_time_ms=elapsed * 1000,
            total_results=total_results,
            filters=filters,
        )
        results = [
            SearchResult(
                document=document,
                score=entry.score,
                snippet=snippet,
                highlights=compute_highlights(entry.matched_terms, words),
                metadata=metadata,
            )
            for entry, document, snippet in hits
        ]

        SEARCH_LATENCY.observe(elapsed)
        logger.debug(
            "Search %r: terms=%s results=%d total=%d in %.2fms",
            query,
            list(query_tokens.terms),
            len(results),
            total_results,
            elapsed * 1000,
        )
        return results

    def get_document(self, doc_id: str) -> Document | None:
        snapshot = self._snapshot
        if snapshot is None:
            return None
        return snapshot.documents.get(doc_id)

    def get_all_documents(self) -> list[Document]:
        snapshot = self._snapshot
        if snapshot is None:
            return []
        return list(snapshot.documents.values())

    def get_documents_by_section(self, section: str) -> list[Document]:
        return [doc for doc in self.get_all_documents() if doc.section == section]

    def get_sections(self) -> list[str]:
        """Distinct section names, sorted."""
        return sorted({doc.section for doc in self.get_all_documents()})

    def get_stats(self) -> IndexStats:
        """Counts over the active store; all zero before the first build."""

        snapshot = self._snapshot
        if snapshot is None:
            return IndexStats()
        documents = list(snapshot.documents.values())
        return IndexStats(
            total_documents=len(documents),
            total_words=sum(doc.metadata.word_count for doc in documents),
            sections=sorted({doc.section for doc in documents}),
            last_indexed=snapshot.last_indexed,
        )
