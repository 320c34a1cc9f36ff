"""Storage collaborator contract and in-memory adapter."""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Protocol

from research_agent.types import Chunk, Document, EpisodicMemory, Status, UserPreferences

SessionStatus = Literal["active", "completed", "needs_clarification"]


@dataclass(slots=True)
class Session:
    session_id: str
    user_id: str
    title: str
    mode: str
    latest_query: str
    status: SessionStatus = "active"
    parent_insight_id: str | None = None
    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass(slots=True)
class Message:
    message_id: str
    session_id: str
    role: Literal["user", "assistant"]
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: float = 0.0


@dataclass(slots=True)
class UsageLog:
    usage_id: str
    session_id: str
    query: str
    provider: str
    model: str
    route: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    estimated_cost_usd: float
    latency_ms: float
    error: str | None = None
    created_at: float = 0.0


@dataclass(slots=True)
class Insight:
    insight_id: str
    session_id: str
    mode: str
    status: Status
    answer: str
    confidence: float
    tradeoffs: list[dict[str, Any]] = field(default_factory=list)
    follow_up_questions: list[str] = field(default_factory=list)
    clarification_prompt: dict[str, str] | None = None
    limitations: list[str] = field(default_factory=list)
    usage_id: str | None = None
    created_at: float = 0.0


@dataclass(slots=True)
class CitationRecord:
    citation_id: str
    session_id: str
    insight_id: str
    doc_id: str
    chunk_id: str
    label: int
    title: str
    url: str
    snippet: str
    relevance: float
    created_at: float = 0.0


class ResearchStore(Protocol):
    """Reads and writes the research core performs against storage."""

    def add_document_if_absent(self, document: Document, chunks: list[Chunk]) -> Document | None:
        """Insert a document with its chunk batch unless its fingerprint is stored.

        Returns the already stored document on a fingerprint match, else `None`.
        """

    def find_document_by_fingerprint(self, fingerprint: str) -> Document | None:
        """Return the document with this content fingerprint, if any."""

    def get_document(self, doc_id: str) -> Document | None:
        """Fetch a document by identifier."""

    def list_chunks(self, doc_id: str | None = None) -> list[Chunk]:
        """Fetch all chunks (optionally of one document) in ingestion order."""

    def get_preferences(self, user_id: str) -> UserPreferences:
        """Fetch a user's preference profile, falling back to defaults."""

    def recent_memories(self, user_id: str, limit: int) -> list[EpisodicMemory]:
        """Fetch a user's most recent memories, newest first."""

    def get_session(self, session_id: str) -> Session:
        """Fetch a session row; raises `KeyError` when it does not exist."""

    def create_session(self, session: Session) -> str:
        """Insert a session row."""

    def update_session(self, session_id: str, **changes: Any) -> None:
        """Patch a session row."""

    def add_message(self, message: Message) -> str:
        """Insert a message row."""

    def add_usage_log(self, usage: UsageLog) -> str:
        """Insert a usage-log row."""

    def add_insight(self, insight: Insight) -> str:
        """Insert an insight row."""

    def add_citation(self, citation: CitationRecord) -> str:
        """Insert a citation row."""

    def add_memory(self, memory: EpisodicMemory) -> str:
        """Insert an episodic-memory row."""


def new_id() -> str:
    return str(uuid.uuid4())


class InMemoryResearchStore:
    """Deterministic store used for tests and local prototyping.

    Every write holds one lock, so rows from concurrent runs never interleave.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {}
        self._fingerprints: dict[str, str] = {}
        self._chunks: dict[str, list[Chunk]] = {}
        self._preferences: dict[str, UserPreferences] = {}
        self._memories: list[EpisodicMemory] = []
        self.sessions: dict[str, Session] = {}
        self.messages: list[Message] = []
        self.usage_logs: list[UsageLog] = []
        self.insights: dict[str, Insight] = {}
        self.citations: list[CitationRecord] = []

    def add_document_if_absent(self, document: Document, chunks: list[Chunk]) -> Document | None:
        with self._lock:
            existing_id = self._fingerprints.get(document.fingerprint)
            if existing_id is not None:
                return self._documents[existing_id]
            self._insert_document(document, chunks)
        return None

    def _insert_document(self, document: Document, chunks: list[Chunk]) -> None:
        if document.doc_id in self._documents:
            raise ValueError(f"Document already stored: {document.doc_id}")
        self._documents[document.doc_id] = document
        self._fingerprints[document.fingerprint] = document.doc_id
        self._chunks[document.doc_id] = list(chunks)

    def find_document_by_fingerprint(self, fingerprint: str) -> Document | None:
        doc_id = self._fingerprints.get(fingerprint)
        return self._documents.get(doc_id) if doc_id else None

    def get_document(self, doc_id: str) -> Document | None:
        return self._documents.get(doc_id)

    def list_chunks(self, doc_id: str | None = None) -> list[Chunk]:
        with self._lock:
            if doc_id is not None:
                return list(self._chunks.get(doc_id, []))
            return [chunk for chunks in self._chunks.values() for chunk in chunks]

    def set_preferences(self, user_id: str, preferences: UserPreferences) -> None:
        with self._lock:
            self._preferences[user_id] = preferences

    def get_preferences(self, user_id: str) -> UserPreferences:
        return self._preferences.get(user_id) or UserPreferences()

    def recent_memories(self, user_id: str, limit: int) -> list[EpisodicMemory]:
        with self._lock:
            owned = [memory for memory in self._memories if memory.user_id == user_id]
        owned.reverse()
        return owned[:limit]

    def get_session(self, session_id: str) -> Session:
        session = self.sessions.get(session_id)
        if session is None:
            raise KeyError(f"Session not found: {session_id}")
        return session

    def create_session(self, session: Session) -> str:
        with self._lock:
            self.sessions[session.session_id] = session
        return session.session_id

    def update_session(self, session_id: str, **changes: Any) -> None:
        with self._lock:
            current = self.sessions.get(session_id)
            if current is None:
                raise KeyError(f"Session not found: {session_id}")
            self.sessions[session_id] = replace(current, **changes)

    def add_message(self, message: Message) -> str:
        with self._lock:
            self.messages.append(message)
        return message.message_id

    def add_usage_log(self, usage: UsageLog) -> str:
        with self._lock:
            self.usage_logs.append(usage)
        return usage.usage_id

    def add_insight(self, insight: Insight) -> str:
        with self._lock:
            self.insights[insight.insight_id] = insight
        return insight.insight_id

    def add_citation(self, citation: CitationRecord) -> str:
        with self._lock:
            self.citations.append(citation)
        return citation.citation_id

    def add_memory(self, memory: EpisodicMemory) -> str:
        with self._lock:
            if not memory.created_at:
                memory.created_at = time.time()
            self._memories.append(memory)
        return memory.memory_id
