"""Query-time ranking over every indexed chunk."""

from __future__ import annotations

import logging

from research_agent.config import Mode, RetrievalConfig
from research_agent.retrieval.scorer import HybridScorer
from research_agent.storage.store import ResearchStore
from research_agent.types import Document, RankedChunk

logger = logging.getLogger(__name__)


class LexicalRetriever:
    """Scores all stored chunks and keeps the top-k above a noise floor.

    Ranking is a synchronous scan, linear in corpus size. Ties keep the
    original chunk order. Chunks whose document is gone are not citable and
    are skipped.
    """

    def __init__(
        self,
        store: ResearchStore,
        scorer: HybridScorer | None = None,
        config: RetrievalConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or (scorer.config if scorer else RetrievalConfig())
        self.scorer = scorer or HybridScorer(self.config)

    def retrieve(
        self,
        query: str,
        *,
        mode: Mode = "quick",
        limit: int | None = None,
    ) -> list[RankedChunk]:
        top_k = limit if limit is not None else self.config.top_k(mode)
        top_k = min(self.config.max_k, max(1, top_k))

        scored = [
            (chunk, self.scorer.score(query, chunk.text)) for chunk in self.store.list_chunks()
        ]
        kept = [item for item in scored if item[1] > self.config.min_relevance]
        kept.sort(key=lambda item: item[1], reverse=True)

        documents: dict[str, Document | None] = {}
        ranked: list[RankedChunk] = []
        for chunk, relevance in kept:
            if len(ranked) == top_k:
                break
            if chunk.doc_id not in documents:
                documents[chunk.doc_id] = self.store.get_document(chunk.doc_id)
            document = documents[chunk.doc_id]
            if document is None:
                logger.warning(
                    "Skipping chunk %s of missing document %s", chunk.chunk_id, chunk.doc_id
                )
                continue
            ranked.append(
                RankedChunk(
                    chunk=chunk,
                    relevance=relevance,
                    title=document.title or "Untitled source",
                    source_url=document.source_url,
                )
            )
        return ranked
