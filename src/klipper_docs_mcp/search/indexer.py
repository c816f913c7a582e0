"""In-memory inverted index construction.

`build_index` turns a complete document store snapshot into an immutable
`InvertedIndex`. There is no incremental update path: reflecting any change
means building a new index from scratch and swapping it in.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from klipper_docs_mcp.domain.model import DocumentStore
from klipper_docs_mcp.search.models import Posting
from klipper_docs_mcp.search.schema import Schema, create_default_schema
from klipper_docs_mcp.search.stats import FieldLengthStats, compute_field_length_stats


@dataclass(frozen=True)
class InvertedIndex:
    """Immutable postings for every schema field.

    Attributes:
        postings: field -> term -> postings (in document order)
        field_lengths: field -> doc_id -> token count
        doc_order: doc_id -> ordinal in the source store, used for tie-breaks
        length_stats: per-field averages for BM25 length normalization
    """

    schema: Schema
    postings: Mapping[str, Mapping[str, tuple[Posting, ...]]]
    field_lengths: Mapping[str, Mapping[str, int]]
    doc_order: Mapping[str, int]
    length_stats: Mapping[str, FieldLengthStats]

    @property
    def doc_count(self) -> int:
        return len(self.doc_order)

    def get_field_postings(self, field_name: str) -> Mapping[str, tuple[Posting, ...]]:
        return self.postings.get(field_name, MappingProxyType({}))


def build_index(documents: DocumentStore, schema: Schema | None = None) -> InvertedIndex:
    """Index every schema field of every document.

    An empty store yields a valid, empty index.
    """

    schema = schema or create_default_schema()
    analyzer = schema.analyzer

    raw_postings: dict[str, dict[str, list[Posting]]] = {f.name: defaultdict(list) for f in schema}
    field_lengths: dict[str, dict[str, int]] = {f.name: {} for f in schema}
    doc_order: dict[str, int] = {}

    for ordinal, (doc_id, document) in enumerate(documents.items()):
        doc_order[doc_id] = ordinal
        for text_field in schema:
            tokens = analyzer(text_field.extract(document))
            field_lengths[text_field.name][doc_id] = len(tokens)

            for term, frequency in Counter(token.text for token in tokens).items():
                raw_postings[text_field.name][term].append(Posting(doc_id=doc_id, frequency=frequency))

    frozen_postings = MappingProxyType(
        {
            field_name: MappingProxyType({term: tuple(plist) for term, plist in by_term.items()})
            for field_name, by_term in raw_postings.items()
        }
    )
    frozen_lengths = MappingProxyType(
        {field_name: MappingProxyType(lengths) for field_name, lengths in field_lengths.items()}
    )

    return InvertedIndex(
        schema=schema,
        postings=frozen_postings,
        field_lengths=frozen_lengths,
        doc_order=MappingProxyType(doc_order),
        length_stats=MappingProxyType(compute_field_length_stats(field_lengths)),
    )
