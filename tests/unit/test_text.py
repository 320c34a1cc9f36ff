import pytest

from research_agent.obs.tracing import DEFAULT_PRICE_PER_1K, CostModel
from research_agent.text import (
    bigrams,
    estimate_tokens,
    expand_query,
    snippet,
    stem,
    tokenize,
    truncate_at_whitespace,
)


def test_tokenize_lowercases_and_drops_short_tokens() -> None:
    assert tokenize("RAG vs. an LLM: fine-tuning, 2x") == ["rag", "llm", "fine", "tuning"]


@pytest.mark.parametrize(
    ("word", "expected"),
    [
        ("relational", "relate"),
        ("conditional", "condition"),
        ("chunking", "chunk"),
        ("tradeoffs", "tradeoff"),
        ("libraries", "library"),
        ("cats", "cat"),
    ],
)
def test_stem_applies_first_matching_rule(word: str, expected: str) -> None:
    assert stem(word) == expected


def test_stem_leaves_short_words_unchanged() -> None:
    for word in ("api", "llm", "rag", "is"):
        assert stem(word) == word
        assert stem(stem(word)) == word


def test_stem_skips_rules_that_leave_too_little() -> None:
    # "ing" would leave "th"; no later rule applies either.
    assert stem("thing") == "thing"


def test_expand_query_appends_synonym_tokens() -> None:
    expanded = expand_query(["rag", "latency"])

    assert expanded[:2] == ["rag", "latency"]
    assert {"retrieval", "augmented", "generation", "response", "speed"} <= set(expanded)
    assert len(expanded) == len(set(expanded))


def test_expand_query_uses_injected_table() -> None:
    assert expand_query(["rag"], {"rag": ["grounded answers"]}) == ["rag", "grounded", "answers"]
    assert expand_query(["rag"], {}) == ["rag"]


def test_bigrams() -> None:
    assert bigrams(["a", "b", "c"]) == ["a b", "b c"]
    assert bigrams(["a"]) == []


def test_snippet_collapses_whitespace_and_truncates() -> None:
    assert snippet("  one\n\n two\tthree ") == "one two three"
    assert len(snippet("word " * 100, 50)) == 50


def test_truncate_at_whitespace() -> None:
    text = "alpha beta gamma delta"
    assert truncate_at_whitespace(text, 100) == text
    assert truncate_at_whitespace(text, 13) == "alpha beta"
    assert truncate_at_whitespace("x" * 30, 10) == "x" * 10


def test_estimate_tokens() -> None:
    assert estimate_tokens("") == 1
    assert estimate_tokens("abcd" * 10) == 10
    assert estimate_tokens("abcde") == 2


def test_cost_model_prices_known_and_unknown_models() -> None:
    model = CostModel()
    assert model.estimate_cost("gemini-2.0-flash", 1500) == pytest.approx(0.003)
    assert model.estimate_cost("mystery-model", 1000) == pytest.approx(DEFAULT_PRICE_PER_1K)

    custom = CostModel({"house-model": 0.5}, default_per_1k=0.0)
    assert custom.estimate_cost("house-model", 2000) == pytest.approx(1.0)
    assert custom.estimate_cost("gemini-2.0-flash", 2000) == 0.0
