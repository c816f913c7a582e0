"""Search data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Posting:
    """A term's occurrence count in one document field."""

    doc_id: str
    frequency: int = 0
