"""Request and response contracts validated with Pydantic v2."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResearchRequest(_CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    user_id: str = Field(min_length=1)
    query: str = Field(min_length=1)
    mode: Literal["quick", "deep"] = "quick"
    session_id: str | None = None
    parent_insight_id: str | None = None


class Citation(_CamelModel):
    source_id: str | None = None
    chunk_id: str | None = None
    title: str
    url: str = Field(min_length=1)
    snippet: str
    relevance: float | None = Field(default=None, ge=0.0, le=1.0)
    label: int = Field(ge=1)


class TradeoffEntry(_CamelModel):
    option: str
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)


class ClarificationPrompt(_CamelModel):
    question: str
    reason: str


class Telemetry(_CamelModel):
    provider: str
    model: str
    route: Literal["primary", "fallback"]
    prompt_tokens: int = Field(ge=0)
    completion_tokens: int = Field(ge=0)
    total_tokens: int = Field(ge=0)
    estimated_cost_usd: float = Field(ge=0.0)
    latency_ms: float = Field(ge=0.0)


class ResearchResponse(_CamelModel):
    """Validated payload returned to callers and persisted per run."""

    mode: Literal["quick", "deep"]
    status: Literal["answered", "needs_clarification", "fallback"]
    answer: str
    citations: list[Citation] = Field(default_factory=list)
    tradeoffs: list[TradeoffEntry] = Field(default_factory=list)
    follow_up_questions: list[str] = Field(default_factory=list, max_length=5)
    clarification_prompt: ClarificationPrompt | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    limitations: list[str] = Field(default_factory=list)
    telemetry: Telemetry | None = None

    @model_validator(mode="after")
    def _labels_are_dense(self) -> "ResearchResponse":
        labels = [citation.label for citation in self.citations]
        if labels != list(range(1, len(labels) + 1)):
            raise ValueError("citation labels must run 1..N in presentation order")
        return self

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)
