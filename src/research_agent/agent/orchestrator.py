"""Research orchestration: evidence -> ambiguity gate -> synthesis -> validate -> persist."""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from research_agent.agent.ambiguity import is_ambiguous
from research_agent.agent.confidence import (
    ConfidenceSignals,
    compute_confidence,
    has_code_blocks,
    has_structured_sections,
)
from research_agent.agent.fallback import LOCAL_MODEL, LOCAL_PROVIDER, build_fallback_answer
from research_agent.agent.output_parser import parse_structured_output
from research_agent.agent.prompts import (
    MEMORY_SUMMARY_SYSTEM_PROMPT,
    EvidenceSnippet,
    build_clarification_request,
    build_memory_summary_request,
    build_system_prompt,
)
from research_agent.config import AgentConfig, Mode
from research_agent.llm.chain import AllProvidersFailedError, FallbackChain
from research_agent.obs.tracing import CostModel
from research_agent.retrieval.retriever import LexicalRetriever
from research_agent.schemas import ResearchRequest, ResearchResponse, Telemetry
from research_agent.storage.store import (
    CitationRecord,
    Insight,
    Message,
    ResearchStore,
    Session,
    UsageLog,
    new_id,
)
from research_agent.text import estimate_tokens, snippet, tokenize, truncate_at_whitespace
from research_agent.types import (
    EpisodicMemory,
    ProviderResponse,
    RankedChunk,
    Status,
    UserPreferences,
)

logger = logging.getLogger(__name__)

CLARIFICATION_FALLBACK_QUESTION = (
    "Could you provide more details about the scope, target stack, and specific goals?"
)
CLARIFICATION_REASON = "The query needs more context for a production-quality recommendation."

CLARIFICATION_FOLLOW_UPS = [
    "Can you specify the technology stack or framework?",
    "What is the target environment (production, dev, research)?",
    "Are you optimizing for latency, cost, or quality?",
]
DEFAULT_FOLLOW_UPS = [
    "How does this compare to alternative approaches?",
    "What are the production deployment considerations?",
    "Can you provide a benchmark or evaluation strategy?",
]
DEEP_PLACEHOLDER_TRADEOFF = {
    "option": "Further analysis needed",
    "pros": ["The model did not generate specific tradeoffs for this query"],
    "cons": ["Consider re-running in deep mode with a more specific query"],
}

_FIRST_QUESTION = re.compile(r"[^.!?\n]*\?")
_JSON_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


@dataclass(slots=True)
class ResearchOutcome:
    response: ResearchResponse
    session_id: str
    insight_id: str

    def to_payload(self) -> dict[str, object]:
        return {
            "sessionId": self.session_id,
            "insightId": self.insight_id,
            **self.response.to_payload(),
        }


@dataclass(slots=True)
class _Evidence:
    ranked: list[RankedChunk]
    preferences: UserPreferences
    memories: list[EpisodicMemory] = field(default_factory=list)


class ResearchOrchestrator:
    """Runs one research query end to end.

    Each run is independent: the only shared state is the store. Generation
    failures never reach the caller; they degrade to a template answer built
    from retrieved evidence. Schema violations degrade to a minimal
    `status=fallback` response. An unknown `session_id` raises `KeyError`
    before any stage runs. Evidence and persistence errors propagate.
    """

    def __init__(
        self,
        *,
        store: ResearchStore,
        retriever: LexicalRetriever,
        chain: FallbackChain,
        config: AgentConfig | None = None,
        cost_model: CostModel | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.retriever = retriever
        self.chain = chain
        self.config = config or AgentConfig()
        self.cost_model = cost_model or CostModel()
        self._clock = clock

    def run(self, request: ResearchRequest | Mapping[str, Any]) -> ResearchOutcome:
        if not isinstance(request, ResearchRequest):
            request = ResearchRequest.model_validate(request)
        if request.session_id:
            # Unknown sessions fail before retrieval or generation.
            self.store.get_session(request.session_id)

        evidence = self._gather_evidence(request)
        clarification_required = is_ambiguous(request.query)

        labelled = [
            EvidenceSnippet(
                label=index,
                title=hit.title,
                url=hit.source_url,
                snippet=snippet(hit.chunk.text, self.retriever.config.snippet_chars),
            )
            for index, hit in enumerate(evidence.ranked, start=1)
        ]
        system_prompt = build_system_prompt(
            mode=request.mode,
            preferences=evidence.preferences,
            evidence=labelled,
            memories=[memory.summary for memory in evidence.memories],
        )
        user_prompt = (
            build_clarification_request(request.query)
            if clarification_required
            else request.query
        )

        llm_error: str | None = None
        try:
            generated = self.chain.generate(
                system_prompt,
                user_prompt,
                mode=request.mode,
                max_tokens=self.config.max_tokens(request.mode),
            )
        except AllProvidersFailedError as exc:
            llm_error = str(exc)
            logger.warning("Synthesizing local fallback answer for %r", request.query[:80])
            generated = self._local_fallback(request, evidence, labelled, system_prompt, user_prompt)

        structured = parse_structured_output(generated.text)
        answer = structured.clean_answer
        metadata = structured.metadata

        status: Status
        if clarification_required:
            status = "needs_clarification"
        elif llm_error:
            status = "fallback"
        else:
            status = "answered"

        ranked = evidence.ranked
        confidence = compute_confidence(
            ConfidenceSignals(
                avg_relevance=sum(hit.relevance for hit in ranked) / len(ranked) if ranked else 0.0,
                sources_count=len({hit.chunk.doc_id for hit in ranked}),
                chunks_found=len(ranked),
                max_chunks=self.retriever.config.top_k(request.mode),
                answer_length=len(answer),
                has_code_blocks=has_code_blocks(answer),
                has_structured_sections=has_structured_sections(answer),
                llm_self_confidence=metadata.confidence,
                clarification_required=clarification_required,
                llm_failed=llm_error is not None,
                mode=request.mode,
            )
        )

        if metadata.tradeoffs:
            tradeoffs = [
                {"option": item.option, "pros": item.pros, "cons": item.cons}
                for item in metadata.tradeoffs
            ]
        elif request.mode == "deep":
            tradeoffs = [dict(DEEP_PLACEHOLDER_TRADEOFF)]
        else:
            tradeoffs = []

        if metadata.follow_up_questions:
            follow_ups = metadata.follow_up_questions
        elif clarification_required:
            follow_ups = list(CLARIFICATION_FOLLOW_UPS)
        else:
            follow_ups = list(DEFAULT_FOLLOW_UPS)

        if llm_error:
            limitations = [
                f"All LLM providers failed. Showing retrieval-only answer. Error: {llm_error[:200]}"
            ]
        elif not ranked:
            limitations = [
                "No indexed sources matched this query. Ingest relevant docs for grounded answers."
            ]
        else:
            limitations = []

        telemetry = {
            "provider": generated.provider,
            "model": generated.model,
            "route": generated.route,
            "prompt_tokens": generated.prompt_tokens,
            "completion_tokens": generated.completion_tokens,
            "total_tokens": generated.total_tokens,
            "estimated_cost_usd": self.cost_model.estimate_cost(
                generated.model, generated.total_tokens
            ),
            "latency_ms": generated.latency_ms,
        }
        candidate = {
            "mode": request.mode,
            "status": status,
            "answer": answer,
            "citations": [
                {
                    "source_id": hit.chunk.doc_id,
                    "chunk_id": hit.chunk.chunk_id,
                    "title": item.title,
                    "url": item.url,
                    "snippet": item.snippet,
                    "relevance": round(hit.relevance, 3),
                    "label": item.label,
                }
                for hit, item in zip(ranked, labelled, strict=True)
            ],
            "tradeoffs": tradeoffs,
            "follow_up_questions": follow_ups,
            "clarification_prompt": (
                {
                    "question": (
                        CLARIFICATION_FALLBACK_QUESTION if llm_error else first_question(answer)
                    ),
                    "reason": CLARIFICATION_REASON,
                }
                if clarification_required
                else None
            ),
            "confidence": confidence,
            "limitations": limitations,
            "telemetry": telemetry,
        }
        response = validate_response(candidate, mode=request.mode)

        session_id, insight_id = self._persist(request, response, generated, llm_error)
        return ResearchOutcome(response=response, session_id=session_id, insight_id=insight_id)

    def _gather_evidence(self, request: ResearchRequest) -> _Evidence:
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="evidence") as pool:
            ranked = pool.submit(self.retriever.retrieve, request.query, mode=request.mode)
            memories = pool.submit(
                self.store.recent_memories, request.user_id, self.config.memory_fetch_limit
            )
            preferences = pool.submit(self.store.get_preferences, request.user_id)
            return _Evidence(
                ranked=ranked.result(),
                preferences=preferences.result(),
                memories=memories.result(),
            )

    def _local_fallback(
        self,
        request: ResearchRequest,
        evidence: _Evidence,
        labelled: list[EvidenceSnippet],
        system_prompt: str,
        user_prompt: str,
    ) -> ProviderResponse:
        text = build_fallback_answer(
            mode=request.mode,
            query=request.query,
            snippets=[item.snippet for item in labelled[: self.config.fallback_snippet_count]],
            preferences=evidence.preferences,
        )
        prompt_tokens = estimate_tokens(system_prompt + user_prompt)
        return ProviderResponse(
            text=text,
            provider=LOCAL_PROVIDER,
            model=LOCAL_MODEL,
            route="fallback",
            prompt_tokens=prompt_tokens,
            completion_tokens=0,
            total_tokens=prompt_tokens,
            latency_ms=0.0,
        )

    def _persist(
        self,
        request: ResearchRequest,
        response: ResearchResponse,
        generated: ProviderResponse,
        llm_error: str | None,
    ) -> tuple[str, str]:
        now = self._clock()
        if request.session_id:
            session_id = request.session_id
            self.store.update_session(
                session_id, latest_query=request.query, mode=request.mode, updated_at=now
            )
        else:
            session_id = self.store.create_session(
                Session(
                    session_id=new_id(),
                    user_id=request.user_id,
                    title=request.query[:80],
                    mode=request.mode,
                    latest_query=request.query,
                    parent_insight_id=request.parent_insight_id,
                    created_at=now,
                    updated_at=now,
                )
            )

        self.store.add_message(
            Message(
                message_id=new_id(),
                session_id=session_id,
                role="user",
                content=request.query,
                created_at=now,
            )
        )

        telemetry = response.telemetry
        usage_id = self.store.add_usage_log(
            UsageLog(
                usage_id=new_id(),
                session_id=session_id,
                query=request.query,
                provider=generated.provider,
                model=generated.model,
                route=generated.route,
                prompt_tokens=generated.prompt_tokens,
                completion_tokens=generated.completion_tokens,
                total_tokens=generated.total_tokens,
                estimated_cost_usd=telemetry.estimated_cost_usd if telemetry else 0.0,
                latency_ms=generated.latency_ms,
                error=llm_error,
                created_at=now,
            )
        )

        insight_id = self.store.add_insight(
            Insight(
                insight_id=new_id(),
                session_id=session_id,
                mode=response.mode,
                status=response.status,
                answer=response.answer,
                confidence=response.confidence,
                tradeoffs=[item.model_dump() for item in response.tradeoffs],
                follow_up_questions=list(response.follow_up_questions),
                clarification_prompt=(
                    response.clarification_prompt.model_dump()
                    if response.clarification_prompt
                    else None
                ),
                limitations=list(response.limitations),
                usage_id=usage_id,
                created_at=now,
            )
        )

        for citation in response.citations:
            self.store.add_citation(
                CitationRecord(
                    citation_id=new_id(),
                    session_id=session_id,
                    insight_id=insight_id,
                    doc_id=citation.source_id or "",
                    chunk_id=citation.chunk_id or "",
                    label=citation.label,
                    title=citation.title,
                    url=citation.url,
                    snippet=citation.snippet,
                    relevance=citation.relevance or 0.0,
                    created_at=now,
                )
            )

        self.store.add_message(
            Message(
                message_id=new_id(),
                session_id=session_id,
                role="assistant",
                content=response.answer,
                metadata={"confidence": response.confidence, "model": generated.model},
                created_at=now,
            )
        )

        self.store.update_session(
            session_id,
            status=(
                "needs_clarification"
                if response.status == "needs_clarification"
                else "completed"
            ),
            updated_at=now,
        )

        if response.status != "needs_clarification":
            self._remember(request, response, generated, session_id, insight_id, now)

        return session_id, insight_id

    def _remember(
        self,
        request: ResearchRequest,
        response: ResearchResponse,
        generated: ProviderResponse,
        session_id: str,
        insight_id: str,
        now: float,
    ) -> None:
        summary, tags = self._summarize(
            request, response.answer, attempt_model=response.status == "answered"
        )
        tags = [*tags, "research", request.mode, generated.provider]

        recent = self.store.recent_memories(request.user_id, self.config.memory_dedup_window)
        if any(
            memory.session_id == session_id and memory.summary[:80] == summary[:80]
            for memory in recent
        ):
            logger.debug("Skipping duplicate memory for session %s", session_id)
            return

        self.store.add_memory(
            EpisodicMemory(
                memory_id=new_id(),
                user_id=request.user_id,
                session_id=session_id,
                insight_id=insight_id,
                summary=summary,
                decisions=[
                    "deep_analysis_generated" if request.mode == "deep" else "quick_answer_generated"
                ],
                tags=tags,
                created_at=now,
            )
        )

    def _summarize(
        self, request: ResearchRequest, answer: str, *, attempt_model: bool
    ) -> tuple[str, list[str]]:
        """Best-effort model summary; falls back to truncated answer text."""

        fallback = (
            truncate_at_whitespace(answer, self.config.memory_summary_chars),
            tokenize(request.query)[:5],
        )
        if not attempt_model:
            return fallback

        try:
            generated = self.chain.generate(
                MEMORY_SUMMARY_SYSTEM_PROMPT,
                build_memory_summary_request(request.query, answer),
                mode="quick",
                max_tokens=self.config.memory_summary_max_tokens,
            )
            payload = json.loads(_JSON_FENCE.sub("", generated.text.strip()))
        except (AllProvidersFailedError, ValueError) as exc:
            logger.info("Memory summary fell back to truncated answer: %s", str(exc)[:120])
            return fallback

        if not isinstance(payload, dict) or not isinstance(payload.get("summary"), str):
            return fallback
        raw_tags = payload.get("tags")
        tags = [str(tag) for tag in raw_tags][:5] if isinstance(raw_tags, list) else []
        return payload["summary"][:300], tags


def first_question(answer: str) -> str:
    match = _FIRST_QUESTION.search(answer)
    if match is not None:
        question = match.group(0).strip()
        if len(question) > 1:
            return question
    return CLARIFICATION_FALLBACK_QUESTION


def validate_response(candidate: Mapping[str, Any], *, mode: Mode) -> ResearchResponse:
    """Validate an assembled response, substituting a minimal safe one on failure."""

    try:
        return ResearchResponse.model_validate(candidate)
    except ValidationError as exc:
        logger.error("Response failed schema validation: %s", exc.errors()[:3])

    telemetry: Telemetry | None = None
    try:
        telemetry = Telemetry.model_validate(candidate.get("telemetry") or {})
    except ValidationError:
        telemetry = None

    return ResearchResponse(
        mode=mode,
        status="fallback",
        answer=(
            "Response validation failed. Returning a minimal safe answer.\n\n"
            + str(candidate.get("answer", ""))[:500]
        ),
        citations=[],
        tradeoffs=[],
        follow_up_questions=["Want me to retry with a narrower scope?"],
        confidence=0.15,
        limitations=["Schema validation failed on the synthesized response."],
        telemetry=telemetry,
    )
