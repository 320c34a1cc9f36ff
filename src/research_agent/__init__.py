"""Research agent package."""

from .config import AgentConfig, ChunkingConfig, ProviderSettings, RetrievalConfig

__all__ = ["AgentConfig", "ChunkingConfig", "ProviderSettings", "RetrievalConfig"]
