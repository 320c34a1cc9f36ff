"""Sequential generation fallback across configured providers."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from research_agent.config import AgentConfig, Mode
from research_agent.llm.providers import ChatProvider, ProviderError
from research_agent.obs.tracing import Timer
from research_agent.types import ProviderResponse

logger = logging.getLogger(__name__)

_CHAT_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "{system_prompt}"),
        MessagesPlaceholder(variable_name="history", optional=True),
        ("human", "{user_prompt}"),
    ]
)


class AllProvidersFailedError(RuntimeError):
    """Every provider in the chain failed; `errors` holds one line per attempt."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        detail = "\n".join(self.errors) if self.errors else "no providers configured"
        super().__init__(f"All LLM providers failed:\n{detail}")


def build_messages(
    system_prompt: str,
    user_prompt: str,
    history: Sequence[BaseMessage | tuple[str, str]] | None = None,
) -> list[BaseMessage]:
    return _CHAT_PROMPT.format_messages(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        history=list(history or []),
    )


class FallbackChain:
    """Tries providers strictly in order and returns the first success.

    Position 0 answers with route `primary`; any later provider answers with
    route `fallback`. Providers are never called concurrently.
    """

    def __init__(
        self,
        providers: Sequence[ChatProvider],
        *,
        config: AgentConfig | None = None,
    ) -> None:
        self.providers = list(providers)
        self.config = config or AgentConfig()

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        mode: Mode,
        max_tokens: int | None = None,
        history: Sequence[BaseMessage | tuple[str, str]] | None = None,
    ) -> ProviderResponse:
        messages = build_messages(system_prompt, user_prompt, history)
        token_limit = max_tokens or self.config.max_tokens(mode)
        errors: list[str] = []

        for position, provider in enumerate(self.providers):
            model = provider.model_for(mode)
            try:
                with Timer() as timer:
                    completion = provider.complete(model, messages, max_tokens=token_limit)
            except ProviderError as exc:
                logger.warning("Provider %s/%s failed: %s", provider.name, model, exc)
                errors.append(f"[{provider.name}/{model}] {exc}")
                continue

            return ProviderResponse(
                text=completion.text,
                provider=provider.name,
                model=model,
                route="primary" if position == 0 else "fallback",
                prompt_tokens=completion.prompt_tokens,
                completion_tokens=completion.completion_tokens,
                total_tokens=completion.prompt_tokens + completion.completion_tokens,
                latency_ms=timer.elapsed_ms,
            )

        logger.error("All %d providers failed", len(self.providers))
        raise AllProvidersFailedError(errors)
