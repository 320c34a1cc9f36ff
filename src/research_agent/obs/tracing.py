"""Timing and cost accounting."""

from __future__ import annotations

import time
from collections.abc import Mapping
from types import MappingProxyType

DEFAULT_PRICE_PER_1K = 0.004

DEFAULT_PRICING_PER_1K: Mapping[str, float] = MappingProxyType(
    {
        "gemini-2.0-flash": 0.002,
        "gemini-2.5-pro-preview-05-06": 0.01,
        "llama-3.3-70b-versatile": 0.002,
        "llama-3.3-70b": 0.0015,
    }
)


class CostModel:
    """Per-model token pricing (USD per 1K total tokens).

    Models missing from the table are billed at `default_per_1k`.
    """

    def __init__(
        self,
        prices: Mapping[str, float] | None = None,
        *,
        default_per_1k: float = DEFAULT_PRICE_PER_1K,
    ) -> None:
        self._prices = MappingProxyType(dict(DEFAULT_PRICING_PER_1K if prices is None else prices))
        self.default_per_1k = default_per_1k

    def unit_price(self, model: str) -> float:
        return self._prices.get(model, self.default_per_1k)

    def estimate_cost(self, model: str, total_tokens: int) -> float:
        return round((total_tokens / 1000.0) * self.unit_price(model), 6)


class Timer:
    """Simple context timer used around provider calls."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
