"""Domain model - parsed documents and the values derived from them.

Everything here is an immutable value object: the document store is replaced
wholesale on each parse, never mutated in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


Difficulty = Literal["beginner", "intermediate", "advanced"]


class DocumentHeading(BaseModel):
    """A markdown heading with its navigation anchor."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1, le=6)
    text: str
    anchor: str


class DocumentMetadata(BaseModel):
    """Derived statistics and classification for a document."""

    model_config = ConfigDict(frozen=True)

    word_count: int = Field(default=0, ge=0)
    reading_time: int = Field(default=0, ge=0, description="Estimated minutes at 200 words per minute")
    difficulty: Difficulty = "intermediate"
    tags: list[str] = Field(default_factory=list)
    headings: list[DocumentHeading] = Field(default_factory=list)


class Document(BaseModel):
    """A parsed markdown document.

    ``id`` is the source path relative to the docs root, POSIX separators,
    without the ``.md`` suffix, so re-parsing the same file yields the same id.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    content: str
    section: str
    subsection: str | None = None
    file_path: str
    last_modified: datetime
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)


# id -> Document; iteration order is the index-assigned order used for tie-breaks.
DocumentStore = Mapping[str, Document]
