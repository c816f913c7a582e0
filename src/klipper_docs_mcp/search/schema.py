"""
Schema definition for the documentation index.

A schema is an explicit field-name -> weight table plus the analyzer each
field is tokenized with. Field boosts feed straight into BM25F scoring, so the
relative weights are what decide whether a title hit outranks a body hit.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from klipper_docs_mcp.domain.model import Document
from klipper_docs_mcp.search.analyzers import StandardAnalyzer


@dataclass(frozen=True)
class TextField:
    """
    Analyzed text field.

    Args:
        name: Field name (e.g., "title", "content")
        boost: Field weight in scoring
        extract: Pulls the raw field text out of a Document
        length_normalize: Apply BM25 length normalization (b). Short label
            fields turn it off so a long title never scores below a short
            section name for the same term.
    """

    name: str
    boost: float
    extract: Callable[[Document], str] = field(compare=False, repr=False)
    length_normalize: bool = True


@dataclass
class Schema:
    """Ordered set of indexed fields sharing one analyzer."""

    fields: list[TextField]
    analyzer: StandardAnalyzer = field(default_factory=StandardAnalyzer)

    def __post_init__(self) -> None:
        if len({f.name for f in self.fields}) != len(self.fields):
            raise ValueError("Schema field names must be unique")
        if any(f.boost <= 0 for f in self.fields):
            raise ValueError("Schema field boosts must be positive")

    def __iter__(self) -> Iterator[TextField]:
        return iter(self.fields)


FIELD_WEIGHTS: dict[str, float] = {
    "title": 10.0,
    "section": 5.0,
    "tags": 3.0,
    "content": 1.0,
}


def create_default_schema(weights: dict[str, float] | None = None) -> Schema:
    """
    Create the documentation schema.

    Fields:
    - title: Document title (boost 10, no length normalization)
    - section: Section/category name (boost 5, no length normalization)
    - tags: Space-joined tag list (boost 3, no length normalization)
    - content: Markdown body (boost 1, baseline)
    """
    boosts = {**FIELD_WEIGHTS, **(weights or {})}
    return Schema(
        fields=[
            TextField("title", boosts["title"], lambda doc: doc.title, length_normalize=False),
            TextField("content", boosts["content"], lambda doc: doc.content),
            TextField("section", boosts["section"], lambda doc: doc.section, length_normalize=False),
            TextField("tags", boosts["tags"], lambda doc: " ".join(doc.metadata.tags), length_normalize=False),
        ]
    )
