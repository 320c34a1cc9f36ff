"""Cheap pre-filter for under-specified queries."""

from __future__ import annotations

from research_agent.text import tokenize

MIN_QUERY_CHARS = 12
MIN_MEANINGFUL_TOKENS = 2

WEAK_WORDS = frozenset(
    {
        "this", "that", "it", "thing", "things", "stuff", "something", "more",
        "better", "some", "any", "what", "how", "why", "can", "the", "about", "one",
    }
)


def is_ambiguous(query: str) -> bool:
    """True when the query is too short or carries fewer than two content words.

    This is a lexical heuristic; domain jargon can trip it either way.
    """

    stripped = query.strip()
    if len(stripped) < MIN_QUERY_CHARS:
        return True
    meaningful = [token for token in tokenize(stripped) if token not in WEAK_WORDS]
    return len(meaningful) < MIN_MEANINGFUL_TOKENS
