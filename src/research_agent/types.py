"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ChunkStrategy = Literal["fixed", "heading-aware", "semantic"]
Route = Literal["primary", "fallback"]
Status = Literal["answered", "needs_clarification", "fallback"]


@dataclass(slots=True, frozen=True)
class Document:
    """An ingested source document. Immutable once stored."""

    doc_id: str
    title: str
    source_url: str
    content: str
    fingerprint: str
    char_count: int
    token_estimate: int
    chunk_strategy: ChunkStrategy
    user_id: str | None = None


@dataclass(slots=True, frozen=True)
class Chunk:
    """An ordered fragment of exactly one document."""

    chunk_id: str
    doc_id: str
    index: int
    text: str
    start_offset: int
    end_offset: int
    token_estimate: int
    strategy: ChunkStrategy
    heading: str | None = None


@dataclass(slots=True)
class RankedChunk:
    """A retrieval hit joined with its owning document's metadata."""

    chunk: Chunk
    relevance: float
    title: str
    source_url: str


@dataclass(slots=True)
class ProviderResponse:
    """Normalized result of one successful generation call."""

    text: str
    provider: str
    model: str
    route: Route
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    latency_ms: float


@dataclass(slots=True)
class Tradeoff:
    option: str
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ParsedMetadata:
    """Machine-readable tail extracted from generated text."""

    follow_up_questions: list[str] = field(default_factory=list)
    tradeoffs: list[Tradeoff] = field(default_factory=list)
    confidence: float | None = None


@dataclass(slots=True)
class UserPreferences:
    prefers_code_examples: bool = True
    verbosity: Literal["concise", "balanced", "detailed"] = "balanced"
    citation_style: Literal["inline", "footnote"] = "inline"


@dataclass(slots=True)
class EpisodicMemory:
    memory_id: str
    user_id: str
    session_id: str
    summary: str
    insight_id: str | None = None
    decisions: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    created_at: float = 0.0
