"""Hybrid lexical relevance scoring."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping

from research_agent.config import RetrievalConfig
from research_agent.text import DEFAULT_SYNONYMS, bigrams, expand_query, stem, tokenize


class HybridScorer:
    """Scores a query against chunk text with four lexical signals.

    1. BM25-style term frequency on stemmed tokens with saturation (`k1`) and
       length normalization (`b`, `avg_doc_length`), averaged over query terms.
    2. Fraction of stemmed query bigrams that also occur in the chunk.
    3. A fixed boost when the chunk contains the whole query verbatim.
    4. A bonus for synonym-expansion terms found in the chunk.

    The weighted sum is clamped to 1.0 and rounded to 4 decimals.
    """

    def __init__(
        self,
        config: RetrievalConfig | None = None,
        synonyms: Mapping[str, Iterable[str]] | None = None,
    ) -> None:
        self.config = config or RetrievalConfig()
        self.synonyms = DEFAULT_SYNONYMS if synonyms is None else synonyms

    def score(self, query: str, content: str) -> float:
        query_tokens = tokenize(query)
        if not query_tokens:
            return 0.0
        content_tokens = tokenize(content)
        if not content_tokens:
            return 0.0

        query_stemmed = [stem(token) for token in query_tokens]
        content_stemmed = [stem(token) for token in content_tokens]

        combined = (
            self._term_frequency(query_stemmed, content_stemmed) * self.config.term_weight
            + self._bigram_overlap(query_stemmed, content_stemmed) * self.config.bigram_weight
            + self._phrase_boost(query, content) * self.config.phrase_scale
            + self._expansion_bonus(query_tokens, set(content_stemmed))
        )
        return min(1.0, round(combined, 4))

    def _term_frequency(self, query_stemmed: list[str], content_stemmed: list[str]) -> float:
        frequencies = Counter(content_stemmed)
        k1 = self.config.k1
        length_norm = 1 - self.config.b + self.config.b * (
            len(content_stemmed) / self.config.avg_doc_length
        )
        total = 0.0
        for term in query_stemmed:
            tf = frequencies.get(term, 0)
            if tf > 0:
                total += (tf * (k1 + 1)) / (tf + k1 * length_norm)
        return min(1.0, total / len(query_stemmed))

    @staticmethod
    def _bigram_overlap(query_stemmed: list[str], content_stemmed: list[str]) -> float:
        query_bigrams = bigrams(query_stemmed)
        if not query_bigrams:
            return 0.0
        content_bigrams = set(bigrams(content_stemmed))
        hits = sum(1 for pair in query_bigrams if pair in content_bigrams)
        return hits / len(query_bigrams)

    def _phrase_boost(self, query: str, content: str) -> float:
        phrase = query.lower().strip()
        return self.config.phrase_boost if phrase and phrase in content.lower() else 0.0

    def _expansion_bonus(self, query_tokens: list[str], content_stems: set[str]) -> float:
        original = set(query_tokens)
        expansion_only = [
            token for token in expand_query(query_tokens, self.synonyms) if token not in original
        ]
        if not expansion_only:
            return 0.0
        hits = sum(1 for token in expansion_only if stem(token) in content_stems)
        return (hits / len(expansion_only)) * self.config.expansion_weight
