"""Statistical helpers for BM25 style scoring.

Kept free of index internals so they can be unit tested in isolation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import math


# dl/avgdl is capped so one very long page is not buried by length normalization.
MAX_LENGTH_RATIO = 4.0


@dataclass(frozen=True)
class FieldLengthStats:
    """Aggregated term statistics for a field."""

    field: str
    total_terms: int
    document_count: int

    @property
    def average_length(self) -> float:
        if self.document_count == 0:
            return 0.0
        return self.total_terms / self.document_count


def compute_field_length_stats(field_lengths: Mapping[str, Mapping[str, int]]) -> dict[str, FieldLengthStats]:
    """Return aggregate stats for each field given per-document lengths."""

    return {
        field_name: FieldLengthStats(
            field=field_name,
            total_terms=sum(max(length, 0) for length in lengths.values()),
            document_count=len(lengths),
        )
        for field_name, lengths in field_lengths.items()
    }


def calculate_idf(doc_freq: int, total_docs: int) -> float:
    """Return ``ln(1 + (N - df + 0.5) / (df + 0.5))``.

    Strictly positive for any df in [0, N], so a term present in every
    document of a tiny corpus still contributes to the score.
    """

    if total_docs <= 0:
        return 0.0
    df = max(0, min(doc_freq, total_docs))
    return math.log(1.0 + (total_docs - df + 0.5) / (df + 0.5))


def bm25(tf: int, doc_length: int, avg_doc_length: float, *, k1: float = 1.2, b: float = 0.75) -> float:
    """Compute the BM25 term weight without IDF.

    Increases monotonically with ``tf`` and is bounded by ``k1 + 1``.
    """

    if tf <= 0:
        return 0.0
    raw_ratio = doc_length / max(avg_doc_length, 1e-9)
    normalized_length = min(raw_ratio, MAX_LENGTH_RATIO)
    denominator = tf + k1 * (1 - b + b * normalized_length)
    return (tf * (k1 + 1)) / denominator
