"""Ingest pipeline: fingerprint -> dedup -> chunk -> store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from hashlib import sha1

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from research_agent.ingest.chunker import Chunker
from research_agent.storage.store import ResearchStore, new_id
from research_agent.text import estimate_tokens, tokenize
from research_agent.types import Chunk, ChunkStrategy, Document

logger = logging.getLogger(__name__)

_FINGERPRINT_PREFIX_CHARS = 500


class IngestRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_url: str = Field(min_length=1)
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    chunk_strategy: ChunkStrategy = "heading-aware"
    user_id: str | None = None


@dataclass(slots=True)
class IngestResult:
    accepted: bool
    source_id: str
    chunk_count: int
    chunk_strategy: ChunkStrategy
    duplicate: bool = False
    message: str = ""
    keyword_preview: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {
            "accepted": self.accepted,
            "sourceId": self.source_id,
            "chunkCount": self.chunk_count,
            "chunkStrategy": self.chunk_strategy,
            "duplicate": self.duplicate,
            "message": self.message,
            "keywordBagPreview": self.keyword_preview,
        }


def content_fingerprint(source_url: str, content: str) -> str:
    """Hash of (locator, content length, hash of the first 500 characters)."""

    prefix_hash = sha1(content[:_FINGERPRINT_PREFIX_CHARS].encode("utf-8")).hexdigest()
    return sha1(f"{source_url}:{len(content)}:{prefix_hash}".encode("utf-8")).hexdigest()


def keyword_bag(text: str, limit: int = 50) -> list[str]:
    return list(dict.fromkeys(tokenize(text)))[:limit]


class IngestPipeline:
    """Coordinates fingerprinting, chunking and the storage write.

    A document whose fingerprint is already stored is not ingested again; the
    caller receives the existing source id with `duplicate=True`.
    """

    def __init__(self, store: ResearchStore, chunker: Chunker | None = None) -> None:
        self._store = store
        self._chunker = chunker or Chunker()

    def ingest(self, request: IngestRequest) -> IngestResult:
        fingerprint = content_fingerprint(request.source_url, request.content)
        existing = self._store.find_document_by_fingerprint(fingerprint)
        if existing is not None:
            return self._duplicate(request, existing)

        doc_id = new_id()
        spans = self._chunker.chunk(request.content, request.chunk_strategy)
        chunks = [
            Chunk(
                chunk_id=f"{doc_id}-chunk-{index:04d}",
                doc_id=doc_id,
                index=index,
                heading=span.heading,
                text=span.text,
                start_offset=span.start,
                end_offset=span.end,
                token_estimate=estimate_tokens(span.text),
                strategy=request.chunk_strategy,
            )
            for index, span in enumerate(spans)
        ]
        document = Document(
            doc_id=doc_id,
            title=request.title,
            source_url=request.source_url,
            content=request.content,
            fingerprint=fingerprint,
            char_count=len(request.content),
            token_estimate=estimate_tokens(request.content),
            chunk_strategy=request.chunk_strategy,
            user_id=request.user_id,
        )
        # A concurrent ingest may have stored the same fingerprint since the lookup.
        existing = self._store.add_document_if_absent(document, chunks)
        if existing is not None:
            return self._duplicate(request, existing)
        logger.info(
            "Ingested %s as %s with %d %s chunks",
            request.source_url,
            doc_id,
            len(chunks),
            request.chunk_strategy,
        )

        return IngestResult(
            accepted=True,
            source_id=doc_id,
            chunk_count=len(chunks),
            chunk_strategy=request.chunk_strategy,
            message="Source ingested.",
            keyword_preview=keyword_bag(request.content)[:8],
        )

    def _duplicate(self, request: IngestRequest, existing: Document) -> IngestResult:
        logger.info("Skipping already ingested source %s (%s)", request.source_url, existing.doc_id)
        return IngestResult(
            accepted=False,
            source_id=existing.doc_id,
            chunk_count=len(self._store.list_chunks(existing.doc_id)),
            chunk_strategy=existing.chunk_strategy,
            duplicate=True,
            message="Source already ingested.",
        )
