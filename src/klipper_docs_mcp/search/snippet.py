"""Query-aware snippet selection for search results."""

from __future__ import annotations

from collections.abc import Iterable


DEFAULT_SNIPPET_CHARS = 200
DEFAULT_WINDOW_STEP = 50
# Word boundary adjustments only look this far into either end of the window.
BOUNDARY_SLACK = 20
ELLIPSIS = "..."


def query_words(query: str) -> list[str]:
    """Lowercased, whitespace-split query words with duplicates removed."""

    seen: set[str] = set()
    words: list[str] = []
    for word in query.lower().split():
        if word not in seen:
            seen.add(word)
            words.append(word)
    return words


def build_snippet(
    text: str,
    query_terms: Iterable[str],
    max_chars: int = DEFAULT_SNIPPET_CHARS,
    step: int = DEFAULT_WINDOW_STEP,
) -> str:
    """Return the window of ``text`` that mentions the most query terms.

    Windows of ``max_chars`` characters start every ``step`` characters; the
    earliest window wins ties. The window is trimmed to whole words and
    marked with ``...`` on whichever sides were cut.

    >>> build_snippet("short body", ["body"])
    'short body'
    """

    if len(text) <= max_chars:
        return text.strip()

    terms = {term.lower() for term in query_terms if term}
    lowered = text.lower()

    best_start = 0
    best_score = -1
    for start in range(0, len(text) - max_chars + 1, max(step, 1)):
        window = lowered[start : start + max_chars]
        score = sum(1 for term in terms if term in window)
        if score > best_score:
            best_score = score
            best_start = start

    end = best_start + max_chars
    snippet = text[best_start:end]

    if best_start > 0:
        first_space = snippet.find(" ")
        if 0 <= first_space < BOUNDARY_SLACK:
            snippet = snippet[first_space + 1 :]
        snippet = ELLIPSIS + snippet

    if end < len(text):
        last_space = snippet.rfind(" ")
        if last_space > len(snippet) - BOUNDARY_SLACK:
            snippet = snippet[:last_space]
        snippet = snippet + ELLIPSIS

    return snippet.strip()
