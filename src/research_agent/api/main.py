"""FastAPI entrypoint for ingest/research/source-search endpoints."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from research_agent.agent.orchestrator import ResearchOrchestrator
from research_agent.config import AgentConfig, RetrievalConfig, default_provider_settings
from research_agent.ingest.chunker import Chunker
from research_agent.ingest.pipeline import IngestPipeline, IngestRequest
from research_agent.llm.chain import FallbackChain
from research_agent.llm.providers import build_providers
from research_agent.obs.log import configure_logging
from research_agent.obs.tracing import CostModel
from research_agent.retrieval.retriever import LexicalRetriever
from research_agent.retrieval.scorer import HybridScorer
from research_agent.schemas import ResearchRequest
from research_agent.storage.store import InMemoryResearchStore
from research_agent.text import snippet


class SourceSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    mode: Literal["quick", "deep"] = "quick"
    limit: int | None = Field(default=None, ge=1, le=20)


configure_logging()

app = FastAPI(title="Research Agent", version="0.1.0")

_retrieval_config = RetrievalConfig()
_agent_config = AgentConfig()
_store = InMemoryResearchStore()
_ingest_pipeline = IngestPipeline(_store, Chunker())
_retriever = LexicalRetriever(_store, HybridScorer(_retrieval_config), _retrieval_config)
_providers = build_providers(default_provider_settings())
_chain = FallbackChain(_providers, config=_agent_config)
_orchestrator = ResearchOrchestrator(
    store=_store,
    retriever=_retriever,
    chain=_chain,
    config=_agent_config,
    cost_model=CostModel(),
)


@app.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "providers": [
            {"name": provider.name, "configured": provider.has_credentials()}
            for provider in _providers
        ],
        "chunk_count": len(_store.list_chunks()),
    }


@app.post("/ingest")
def ingest(request: IngestRequest) -> dict[str, Any]:
    try:
        result = _ingest_pipeline.ingest(request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return result.to_payload()


@app.post("/research")
def research(request: ResearchRequest) -> dict[str, Any]:
    try:
        outcome = _orchestrator.run(request)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return outcome.to_payload()


@app.post("/sources/search")
def source_search(request: SourceSearchRequest) -> dict[str, Any]:
    hits = _retriever.retrieve(request.query, mode=request.mode, limit=request.limit)
    return {
        "query": request.query,
        "items": [
            {
                "chunkId": hit.chunk.chunk_id,
                "sourceId": hit.chunk.doc_id,
                "heading": hit.chunk.heading,
                "title": hit.title,
                "url": hit.source_url,
                "snippet": snippet(hit.chunk.text, _retrieval_config.snippet_chars),
                "relevance": hit.relevance,
            }
            for hit in hits
        ],
    }
