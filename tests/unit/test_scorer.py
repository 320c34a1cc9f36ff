import pytest

from research_agent.config import RetrievalConfig
from research_agent.ingest.chunker import Chunker
from research_agent.ingest.pipeline import IngestPipeline, IngestRequest
from research_agent.retrieval.retriever import LexicalRetriever
from research_agent.retrieval.scorer import HybridScorer
from research_agent.storage.store import InMemoryResearchStore
from research_agent.types import Document


def test_exact_phrase_outranks_scattered_terms() -> None:
    scorer = HybridScorer()
    phrase = scorer.score("semantic chunking", "Semantic chunking keeps paragraphs intact.")
    scattered = scorer.score("semantic chunking", "Chunking is hard. Semantic search helps.")

    assert phrase > scattered > 0.0


def test_stemming_matches_inflected_forms() -> None:
    scorer = HybridScorer()
    assert scorer.score("chunking tradeoffs", "A chunk tradeoff table.") > 0.3


def test_scores_are_bounded_and_rounded() -> None:
    scorer = HybridScorer()
    text = "hybrid retrieval " * 50
    value = scorer.score("hybrid retrieval", text)

    assert 0.0 <= value <= 1.0
    assert value == round(value, 4)


def test_no_usable_tokens_scores_zero() -> None:
    scorer = HybridScorer()
    assert scorer.score("", "anything at all") == 0.0
    assert scorer.score("a b c", "anything at all") == 0.0
    assert scorer.score("retrieval", "") == 0.0


def test_synonym_expansion_contributes_without_term_overlap() -> None:
    content = "The transformer response time dominates."

    assert HybridScorer().score("llm latency", content) == pytest.approx(0.05)
    assert HybridScorer(synonyms={}).score("llm latency", content) == 0.0


def _store_with(*documents: tuple[str, str]) -> InMemoryResearchStore:
    store = InMemoryResearchStore()
    pipeline = IngestPipeline(store, Chunker())
    for index, (title, content) in enumerate(documents):
        pipeline.ingest(
            IngestRequest(
                source_url=f"https://docs.test/{index}",
                title=title,
                content=content,
                chunk_strategy="semantic",
            )
        )
    return store


def test_retriever_ranks_and_joins_document_metadata() -> None:
    store = _store_with(
        ("Chunking guide", "Semantic chunking tradeoffs matter for recall.\n\nUnrelated gardening notes."),
        ("Caching", "Redis caching reduces database load."),
    )
    hits = LexicalRetriever(store).retrieve("semantic chunking tradeoffs")

    assert hits
    assert hits[0].title == "Chunking guide"
    assert hits[0].source_url == "https://docs.test/0"
    assert all(hit.relevance > 0.05 for hit in hits)
    assert [hit.relevance for hit in hits] == sorted((hit.relevance for hit in hits), reverse=True)


def test_retriever_respects_mode_and_clamps_limit() -> None:
    paragraphs = "\n\n".join(
        f"Paragraph {i}: vector retrieval evaluation " + "filler words " * 70 for i in range(30)
    )
    store = _store_with(("Retrieval", paragraphs))
    retriever = LexicalRetriever(store)

    assert len(store.list_chunks()) >= 20
    assert len(retriever.retrieve("vector retrieval evaluation", mode="quick")) == 4
    assert len(retriever.retrieve("vector retrieval evaluation", mode="deep")) == 8
    assert len(retriever.retrieve("vector retrieval evaluation", limit=500)) == 20
    assert len(retriever.retrieve("vector retrieval evaluation", limit=0)) == 1


def test_retriever_drops_noise_below_floor() -> None:
    store = _store_with(("Gardening", "Tomatoes need sunlight and water."))
    assert LexicalRetriever(store).retrieve("kubernetes autoscaling policies") == []

    strict = RetrievalConfig(min_relevance=0.99)
    other = _store_with(("Chunking", "Semantic chunking tradeoffs."))
    assert LexicalRetriever(other, HybridScorer(strict), strict).retrieve("semantic chunking") == []


def test_retriever_skips_chunks_of_missing_documents() -> None:
    class _PartialStore(InMemoryResearchStore):
        missing: set[str] = set()

        def get_document(self, doc_id: str) -> Document | None:
            return None if doc_id in self.missing else super().get_document(doc_id)

    store = _PartialStore()
    pipeline = IngestPipeline(store)
    orphan = pipeline.ingest(
        IngestRequest(source_url="https://docs.test/x", title="X", content="Hybrid retrieval scoring.")
    )
    kept = pipeline.ingest(
        IngestRequest(source_url="https://docs.test/y", title="Y", content="Hybrid retrieval notes.")
    )
    store.missing = {orphan.source_id}

    hits = LexicalRetriever(store).retrieve("hybrid retrieval", limit=1)

    assert [hit.chunk.doc_id for hit in hits] == [kept.source_id]
    assert hits[0].source_url == "https://docs.test/y"


def test_retriever_breaks_ties_by_ingestion_order() -> None:
    store = _store_with(
        ("First copy", "Lexical ranking keeps ties stable."),
        ("Second copy", "Lexical ranking keeps ties stable."),
        ("Third copy", "Lexical ranking keeps ties stable."),
    )

    hits = LexicalRetriever(store).retrieve("lexical ranking ties")

    assert len({hit.relevance for hit in hits}) == 1
    assert [hit.title for hit in hits] == ["First copy", "Second copy", "Third copy"]
