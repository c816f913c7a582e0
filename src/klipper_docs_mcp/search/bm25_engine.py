"""BM25F scoring over an in-memory inverted index."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from klipper_docs_mcp.search.indexer import InvertedIndex
from klipper_docs_mcp.search.stats import bm25, calculate_idf


@dataclass(frozen=True)
class RankedDocument:
    """A scored document plus the index terms that contributed to it."""

    doc_id: str
    score: float
    matched_terms: frozenset[str]


@dataclass(frozen=True)
class QueryTokens:
    """Deduplicated query terms in first-seen order."""

    terms: tuple[str, ...]

    def is_empty(self) -> bool:
        return not self.terms


class BM25SearchEngine:
    """Compute BM25F scores for documents in an `InvertedIndex`.

    Each (term, field) hit contributes ``idf * bm25_tf * field_boost``. The
    IDF is computed per field, so a rare title term and a rare body term are
    weighed on equal footing before the boost is applied. Fields with
    ``length_normalize`` off score with b=0, so a single hit in them is worth
    the same whatever the field length and the boost order decides.
    """

    def __init__(self, *, k1: float = 1.2, b: float = 0.75) -> None:
        self.k1 = k1
        self.b = b

    def tokenize_query(self, index: InvertedIndex, query: str) -> QueryTokens:
        """Analyze the query with the same analyzer the index was built with."""

        seen: set[str] = set()
        terms: list[str] = []
        for term in index.schema.analyzer.terms(query.strip()):
            if term not in seen:
                seen.add(term)
                terms.append(term)
        return QueryTokens(terms=tuple(terms))

    def score(self, index: InvertedIndex, query_tokens: QueryTokens) -> list[RankedDocument]:
        """Return every matching document, best first.

        Ties keep the document store order so the ranking is deterministic.
        """

        if query_tokens.is_empty() or index.doc_count == 0:
            return []

        doc_scores: dict[str, float] = defaultdict(float)
        doc_terms: dict[str, set[str]] = defaultdict(set)
        total_docs = index.doc_count

        for text_field in index.schema:
            postings_by_term = index.get_field_postings(text_field.name)
            if not postings_by_term:
                continue
            stats = index.length_stats[text_field.name]
            avg_length = max(stats.average_length, 1e-9)
            doc_lengths = index.field_lengths[text_field.name]
            b = self.b if text_field.length_normalize else 0.0

            for term in query_tokens.terms:
                postings = postings_by_term.get(term)
                if not postings:
                    continue
                idf = calculate_idf(len(postings), total_docs)
                for posting in postings:
                    doc_length = doc_lengths.get(posting.doc_id, posting.frequency)
                    weight = bm25(posting.frequency, doc_length, avg_length, k1=self.k1, b=b)
                    if weight <= 0:
                        continue
                    doc_scores[posting.doc_id] += idf * weight * text_field.boost
                    doc_terms[posting.doc_id].add(term)

        ranked = [
            RankedDocument(doc_id=doc_id, score=score, matched_terms=frozenset(doc_terms[doc_id]))
            for doc_id, score in doc_scores.items()
        ]
        ranked.sort(key=lambda entry: (-entry.score, index.doc_order[entry.doc_id]))
        return ranked
