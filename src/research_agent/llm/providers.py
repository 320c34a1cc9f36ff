"""HTTP chat-completion providers and their wire-format normalization."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from langchain_core.messages import BaseMessage
from pydantic import BaseModel, Field, ValidationError

from research_agent.config import Mode, ProviderSettings
from research_agent.text import estimate_tokens


class ProviderError(RuntimeError):
    """A single provider attempt failed."""


@dataclass(slots=True)
class Completion:
    text: str
    prompt_tokens: int
    completion_tokens: int


@dataclass(slots=True)
class _HttpRequest:
    url: str
    headers: dict[str, str]
    body: dict[str, Any]


class _GeminiPart(BaseModel):
    text: str = ""


class _GeminiContent(BaseModel):
    parts: list[_GeminiPart] = Field(default_factory=list)


class _GeminiCandidate(BaseModel):
    content: _GeminiContent = Field(default_factory=_GeminiContent)


class _GeminiUsage(BaseModel):
    prompt_token_count: int | None = Field(default=None, alias="promptTokenCount")
    candidates_token_count: int | None = Field(default=None, alias="candidatesTokenCount")


class GeminiResponse(BaseModel):
    """`generateContent` response shape (only the fields we read)."""

    candidates: list[_GeminiCandidate] = Field(min_length=1)
    usage_metadata: _GeminiUsage | None = Field(default=None, alias="usageMetadata")


class _OpenAIMessage(BaseModel):
    content: str | None = None


class _OpenAIChoice(BaseModel):
    message: _OpenAIMessage


class _OpenAIUsage(BaseModel):
    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class OpenAIChatResponse(BaseModel):
    """`/chat/completions` response shape (only the fields we read)."""

    choices: list[_OpenAIChoice] = Field(min_length=1)
    usage: _OpenAIUsage | None = None


class ChatProvider(ABC):
    """One backend in the fallback chain.

    Subclasses translate chat messages into their request body and validate
    the raw JSON response into a `Completion`. Usage counts missing from the
    response are estimated at ~4 characters per token.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        client: httpx.Client | None = None,
        api_key: str | None = None,
    ) -> None:
        self.settings = settings
        self._client = client
        self._api_key = api_key

    @property
    def name(self) -> str:
        return self.settings.name

    def model_for(self, mode: Mode) -> str:
        return self.settings.model_for(mode)

    def has_credentials(self) -> bool:
        return bool(self._api_key or os.getenv(self.settings.api_key_env))

    def complete(
        self,
        model: str,
        messages: Sequence[BaseMessage],
        *,
        max_tokens: int,
    ) -> Completion:
        api_key = self._api_key or os.getenv(self.settings.api_key_env)
        if not api_key:
            raise ProviderError(f"{self.settings.api_key_env} is not set")

        request = self._build_request(model, messages, max_tokens, api_key)
        label = self.name.capitalize()
        try:
            response = self._http().post(
                request.url,
                json=request.body,
                headers=request.headers,
                timeout=self.settings.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"{label} request failed: {exc}") from exc

        if not response.is_success:
            raise ProviderError(f"{label} {response.status_code}: {response.text[:300]}")

        try:
            payload = response.json()
            completion = self._normalize(payload, messages)
        except (ValueError, ValidationError) as exc:
            raise ProviderError(f"{label} returned a malformed payload: {exc}") from exc

        if not completion.text.strip():
            raise ProviderError(f"{label} returned an empty completion")
        return completion

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.timeout_seconds)
        return self._client

    @abstractmethod
    def _build_request(
        self,
        model: str,
        messages: Sequence[BaseMessage],
        max_tokens: int,
        api_key: str,
    ) -> _HttpRequest:
        """Render messages into this provider's request."""

    @abstractmethod
    def _normalize(self, payload: Any, messages: Sequence[BaseMessage]) -> Completion:
        """Validate a raw JSON payload into a `Completion`."""


class GeminiProvider(ChatProvider):
    """Google-style API: separate system instruction, `contents` turns."""

    def _build_request(
        self,
        model: str,
        messages: Sequence[BaseMessage],
        max_tokens: int,
        api_key: str,
    ) -> _HttpRequest:
        system_parts: list[dict[str, str]] = []
        contents: list[dict[str, Any]] = []
        for message in messages:
            text = message_text(message)
            if message.type == "system":
                system_parts.append({"text": text})
                continue
            role = "model" if message.type == "ai" else "user"
            contents.append({"role": role, "parts": [{"text": text}]})

        body: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "maxOutputTokens": max_tokens,
                "temperature": self.settings.temperature,
            },
        }
        if system_parts:
            body["system_instruction"] = {"parts": system_parts}

        return _HttpRequest(
            url=f"{self.settings.base_url.rstrip('/')}/models/{model}:generateContent",
            headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
            body=body,
        )

    def _normalize(self, payload: Any, messages: Sequence[BaseMessage]) -> Completion:
        parsed = GeminiResponse.model_validate(payload)
        text = "".join(part.text for part in parsed.candidates[0].content.parts)
        usage = parsed.usage_metadata or _GeminiUsage()
        return Completion(
            text=text,
            prompt_tokens=_or_estimate(usage.prompt_token_count, _joined(messages)),
            completion_tokens=_or_estimate(usage.candidates_token_count, text),
        )


class OpenAICompatibleProvider(ChatProvider):
    """OpenAI-style API: one `messages` array including the system role."""

    _ROLES = {"system": "system", "human": "user", "ai": "assistant"}

    def _build_request(
        self,
        model: str,
        messages: Sequence[BaseMessage],
        max_tokens: int,
        api_key: str,
    ) -> _HttpRequest:
        return _HttpRequest(
            url=f"{self.settings.base_url.rstrip('/')}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            body={
                "model": model,
                "messages": [
                    {"role": self._ROLES.get(message.type, "user"), "content": message_text(message)}
                    for message in messages
                ],
                "max_tokens": max_tokens,
                "temperature": self.settings.temperature,
            },
        )

    def _normalize(self, payload: Any, messages: Sequence[BaseMessage]) -> Completion:
        parsed = OpenAIChatResponse.model_validate(payload)
        text = parsed.choices[0].message.content or ""
        usage = parsed.usage or _OpenAIUsage()
        return Completion(
            text=text,
            prompt_tokens=_or_estimate(usage.prompt_tokens, _joined(messages)),
            completion_tokens=_or_estimate(usage.completion_tokens, text),
        )


_PROVIDER_CLASSES: dict[str, type[ChatProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
}


def build_providers(
    settings: Sequence[ProviderSettings],
    *,
    client: httpx.Client | None = None,
) -> list[ChatProvider]:
    return [
        _PROVIDER_CLASSES[entry.wire_format](entry, client=client) for entry in settings
    ]


def message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for item in content:
        if isinstance(item, dict) and "text" in item:
            parts.append(str(item["text"]))
        else:
            parts.append(str(item))
    return " ".join(parts).strip()


def _joined(messages: Sequence[BaseMessage]) -> str:
    return "".join(message_text(message) for message in messages)


def _or_estimate(reported: int | None, text: str) -> int:
    return reported if reported is not None else estimate_tokens(text)
