"""Text utilities shared by ingestion, retrieval and orchestration."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType

_SPLIT_PATTERN = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")

# Ordered most specific first; the first rule whose result keeps >= 3 chars wins.
_SUFFIX_RULES: tuple[tuple[str, str], ...] = (
    ("ational", "ate"),
    ("tional", "tion"),
    ("ization", "ize"),
    ("fulness", "ful"),
    ("iveness", "ive"),
    ("ously", "ous"),
    ("ating", "ate"),
    ("izing", "ize"),
    ("ments", "ment"),
    ("ement", ""),
    ("ings", ""),
    ("tion", ""),
    ("sion", ""),
    ("ness", ""),
    ("ment", ""),
    ("able", ""),
    ("ible", ""),
    ("ally", ""),
    ("ful", ""),
    ("ous", ""),
    ("ive", ""),
    ("ing", ""),
    ("ies", "y"),
    ("ied", "y"),
    ("ted", ""),
    ("ed", ""),
    ("ly", ""),
    ("er", ""),
    ("es", ""),
    ("s", ""),
)

DEFAULT_SYNONYMS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "llm": ("language model", "large language model", "gpt", "transformer"),
        "rag": ("retrieval augmented generation", "retrieval augmented"),
        "api": ("endpoint", "rest", "interface"),
        "ml": ("machine learning",),
        "ai": ("artificial intelligence",),
        "db": ("database",),
        "sql": ("structured query language", "relational database"),
        "nosql": ("document database", "non relational"),
        "vector": ("embedding", "semantic search"),
        "embedding": ("vector", "representation"),
        "chunking": ("splitting", "segmentation", "partitioning"),
        "hallucination": ("confabulation", "fabrication", "incorrect generation"),
        "finetuning": ("fine tuning", "fine-tuning", "training"),
        "prompt": ("instruction", "input"),
        "token": ("tokenization", "subword"),
        "latency": ("response time", "speed", "performance"),
        "throughput": ("requests per second", "bandwidth"),
        "kubernetes": ("k8s", "container orchestration"),
        "docker": ("container", "containerization"),
        "ci": ("continuous integration",),
        "cd": ("continuous deployment", "continuous delivery"),
        "auth": ("authentication", "authorization"),
        "oauth": ("open authorization",),
        "jwt": ("json web token",),
        "graphql": ("graph query language",),
        "grpc": ("remote procedure call",),
        "websocket": ("real time", "bidirectional"),
        "microservice": ("microservices", "service mesh"),
        "monolith": ("monolithic", "single service"),
        "cache": ("caching", "memoization", "redis"),
        "queue": ("message queue", "event bus", "kafka", "rabbitmq"),
    }
)


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens longer than two characters."""
    return [token for token in _SPLIT_PATTERN.split(text.lower()) if len(token) > 2]


def stem(word: str) -> str:
    if len(word) < 4:
        return word
    for suffix, replacement in _SUFFIX_RULES:
        if word.endswith(suffix):
            result = word[: len(word) - len(suffix)] + replacement
            if len(result) >= 3:
                return result
    return word


def expand_query(
    tokens: Iterable[str],
    synonyms: Mapping[str, Iterable[str]] = DEFAULT_SYNONYMS,
) -> list[str]:
    """Return the query tokens followed by tokens of any known synonyms."""

    base = list(tokens)
    expanded = list(dict.fromkeys(base))
    seen = set(expanded)
    for token in base:
        for phrase in synonyms.get(token, ()):
            for synonym_token in tokenize(phrase):
                if synonym_token not in seen:
                    seen.add(synonym_token)
                    expanded.append(synonym_token)
    return expanded


def bigrams(tokens: list[str]) -> list[str]:
    return [f"{left} {right}" for left, right in zip(tokens, tokens[1:])]


def snippet(text: str, max_chars: int = 220) -> str:
    """Collapse whitespace and truncate."""
    return _WHITESPACE.sub(" ", text).strip()[:max_chars]


def truncate_at_whitespace(text: str, max_chars: int) -> str:
    collapsed = _WHITESPACE.sub(" ", text).strip()
    if len(collapsed) <= max_chars:
        return collapsed
    cut = collapsed[:max_chars]
    boundary = cut.rfind(" ")
    return cut[:boundary].rstrip() if boundary > 0 else cut


def estimate_tokens(text: str) -> int:
    """Rough token estimate at ~4 characters per token, never below 1."""
    return max(1, math.ceil(len(text) / 4))
