from collections.abc import Callable

import httpx
import pytest

from research_agent.config import ProviderSettings

PROVIDER_KEY_ENVS = ("GEMINI_API_KEY", "GROQ_API_KEY", "CEREBRAS_API_KEY")


@pytest.fixture(autouse=True)
def _no_provider_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in PROVIDER_KEY_ENVS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def provider_settings() -> list[ProviderSettings]:
    return [
        ProviderSettings(
            name="gemini",
            wire_format="gemini",
            base_url="https://gemini.test/v1beta",
            quick_model="gemini-2.0-flash",
            deep_model="gemini-2.5-pro-preview-05-06",
            api_key_env="GEMINI_API_KEY",
        ),
        ProviderSettings(
            name="groq",
            wire_format="openai",
            base_url="https://groq.test/openai/v1",
            quick_model="llama-3.3-70b-versatile",
            deep_model="llama-3.3-70b-versatile",
            api_key_env="GROQ_API_KEY",
        ),
        ProviderSettings(
            name="cerebras",
            wire_format="openai",
            base_url="https://cerebras.test/v1",
            quick_model="llama-3.3-70b",
            deep_model="llama-3.3-70b",
            api_key_env="CEREBRAS_API_KEY",
        ),
    ]


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))

    return _build


