"""Analyzer utilities for the in-memory search index.

Analyzers follow Whoosh's composable tokenizer/filter design: a tokenizer
yields positioned tokens and each filter transforms the stream. The same
analyzer instance is used at index-build time and at query time, so a given
input always produces the same token stream.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
import re
from typing import Protocol


@dataclass(frozen=True)
class Token:
    """A term plus where it came from in the source text."""

    text: str
    position: int
    start_char: int
    end_char: int


class Tokenizer(Protocol):
    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Split on anything that is not a word character or apostrophe.

    Underscores count as word characters, so config option names such as
    ``rotation_distance`` survive as single tokens while hyphenated words
    (``g-codes``) split.
    """

    def __init__(self, pattern: str = r"\w+(?:'\w+)*") -> None:
        self.pattern = re.compile(pattern, re.UNICODE)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(text=match.group(0), position=position, start_char=match.start(), end_char=match.end())


class LowercaseFilter:
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            yield token if token.text.islower() else replace(token, text=token.text.lower())


DEFAULT_STOPWORDS: tuple[str, ...] = (
    "a",
    "an",
    "and",
    "are",
    "as",
    "at",
    "be",
    "but",
    "by",
    "for",
    "if",
    "in",
    "into",
    "is",
    "it",
    "no",
    "not",
    "of",
    "on",
    "or",
    "such",
    "that",
    "the",
    "their",
    "then",
    "there",
    "these",
    "they",
    "this",
    "to",
    "was",
    "will",
    "with",
)


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOPWORDS
        self.stopwords = frozenset(word.lower() for word in vocab)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text not in self.stopwords:
                yield token


# Ordered: first matching rule wins.
_PLURAL_RULES: tuple[tuple[str, str], ...] = (
    ("sses", "ss"),
    ("ies", "y"),
    ("ches", "ch"),
    ("shes", "sh"),
    ("xes", "x"),
    ("zzes", "zz"),
)

_KEEP_ENDINGS: tuple[str, ...] = ("ss", "us", "is")

MIN_STEM_LENGTH = 3


def stem(word: str) -> str:
    """Normalize plural suffixes; anything else is returned untouched.

    >>> [stem(w) for w in ("probes", "entries", "switches", "axis", "steppers")]
    ['probe', 'entry', 'switch', 'axis', 'stepper']
    """

    for suffix, replacement in _PLURAL_RULES:
        if word.endswith(suffix):
            candidate = word[: -len(suffix)] + replacement
            return candidate if len(candidate) >= MIN_STEM_LENGTH else word
    if word.endswith("s") and not word.endswith(_KEEP_ENDINGS):
        candidate = word[:-1]
        if len(candidate) >= MIN_STEM_LENGTH:
            return candidate
    return word


class PluralStemFilter:
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            stemmed = stem(token.text)
            yield token if stemmed == token.text else replace(token, text=stemmed)


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> list[Token]:
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        # Renumber so positions stay contiguous after stopword removal.
        return [replace(token, position=idx) for idx, token in enumerate(stream)]


class StandardAnalyzer:
    """Default analyzer: word split, lowercase, stopwords, plural stemming."""

    def __init__(self, *, stopwords: Sequence[str] | None = None, apply_stemming: bool = True) -> None:
        filters: list[TokenFilter] = [LowercaseFilter(), StopFilter(stopwords)]
        if apply_stemming:
            filters.append(PluralStemFilter())
        self.pipeline = AnalyzerPipeline(RegexTokenizer(), filters)

    def __call__(self, text: str) -> list[Token]:
        if not text:
            return []
        return self.pipeline(text)

    def terms(self, text: str) -> list[str]:
        """Token texts only, in order."""
        return [token.text for token in self(text)]
