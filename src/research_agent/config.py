"""Configuration models for the research agent."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

Mode = Literal["quick", "deep"]


class ChunkingConfig(BaseModel):
    """Configures the fixed, heading-aware and semantic chunking strategies."""

    window_chars: int = Field(default=900, ge=50)
    overlap_chars: int = Field(default=120, ge=0)
    max_chunk_chars: int = Field(default=1000, ge=50)
    default_heading: str = "Document"

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkingConfig":
        if self.overlap_chars >= self.window_chars:
            raise ValueError("overlap_chars must be less than window_chars")
        return self


class RetrievalConfig(BaseModel):
    """Configures hybrid lexical scoring and top-k selection."""

    k1: float = Field(default=1.2, gt=0.0)
    b: float = Field(default=0.75, ge=0.0, le=1.0)
    avg_doc_length: float = Field(default=200.0, gt=0.0)
    min_relevance: float = Field(default=0.05, ge=0.0, le=1.0)
    quick_k: int = Field(default=4, ge=1)
    deep_k: int = Field(default=8, ge=1)
    max_k: int = Field(default=20, ge=1)
    snippet_chars: int = Field(default=220, ge=20)

    term_weight: float = 0.50
    bigram_weight: float = 0.20
    phrase_boost: float = 0.2
    phrase_scale: float = 0.75
    expansion_weight: float = 0.15

    def top_k(self, mode: Mode) -> int:
        return self.deep_k if mode == "deep" else self.quick_k


class ProviderSettings(BaseModel):
    """One entry of the generation fallback chain."""

    name: str = Field(min_length=1)
    wire_format: Literal["gemini", "openai"]
    base_url: str = Field(min_length=1)
    quick_model: str = Field(min_length=1)
    deep_model: str = Field(min_length=1)
    api_key_env: str = Field(min_length=1)
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=60.0, gt=0.0)

    def model_for(self, mode: Mode) -> str:
        return self.deep_model if mode == "deep" else self.quick_model


class AgentConfig(BaseModel):
    """Configures orchestration limits and memory handling."""

    quick_max_tokens: int = Field(default=1500, ge=1)
    deep_max_tokens: int = Field(default=4096, ge=1)
    memory_fetch_limit: int = Field(default=10, ge=0)
    memory_dedup_window: int = Field(default=3, ge=1)
    memory_summary_chars: int = Field(default=280, ge=20)
    memory_summary_max_tokens: int = Field(default=200, ge=1)
    fallback_snippet_count: int = Field(default=3, ge=1)

    def max_tokens(self, mode: Mode) -> int:
        return self.deep_max_tokens if mode == "deep" else self.quick_max_tokens


def default_provider_settings() -> list[ProviderSettings]:
    """Gemini (primary) -> Groq -> Cerebras."""

    return [
        ProviderSettings(
            name="gemini",
            wire_format="gemini",
            base_url="https://generativelanguage.googleapis.com/v1beta",
            quick_model="gemini-2.0-flash",
            deep_model="gemini-2.5-pro-preview-05-06",
            api_key_env="GEMINI_API_KEY",
        ),
        ProviderSettings(
            name="groq",
            wire_format="openai",
            base_url="https://api.groq.com/openai/v1",
            quick_model="llama-3.3-70b-versatile",
            deep_model="llama-3.3-70b-versatile",
            api_key_env="GROQ_API_KEY",
        ),
        ProviderSettings(
            name="cerebras",
            wire_format="openai",
            base_url="https://api.cerebras.ai/v1",
            quick_model="llama-3.3-70b",
            deep_model="llama-3.3-70b",
            api_key_env="CEREBRAS_API_KEY",
        ),
    ]
