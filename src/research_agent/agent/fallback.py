"""Deterministic answer synthesis when every generation provider fails."""

from __future__ import annotations

from collections.abc import Sequence

from research_agent.config import Mode
from research_agent.types import UserPreferences

LOCAL_PROVIDER = "local"
LOCAL_MODEL = "fallback-local"

_CODE_EXAMPLE = """

Example:
```python
hits = retriever.retrieve(query, mode="deep")
answer = synthesize(hits)
```"""


def build_fallback_answer(
    *,
    mode: Mode,
    query: str,
    snippets: Sequence[str],
    preferences: UserPreferences,
) -> str:
    """Template answer built only from retrieved evidence snippets.

    Snippets are numbered in presentation order so `[n]` matches the
    citation labels of the same run.
    """

    intro = (
        f"Deep research synthesis for: {query}"
        if mode == "deep"
        else f"Quick synthesis for: {query}"
    )
    if snippets:
        evidence = "\n".join(f"{index}. {text} [{index}]" for index, text in enumerate(snippets, start=1))
    else:
        evidence = "No relevant indexed chunks found. Consider ingesting domain docs first."
    guidance = (
        "Compare at least three alternatives and include failure modes."
        if mode == "deep"
        else "Focus on the highest-signal implementation path."
    )
    code = _CODE_EXAMPLE if preferences.prefers_code_examples else ""
    if preferences.verbosity == "detailed":
        tail = "\n\nDetailed note: validate chunking strategy against precision/recall and monitor cost drift."
    elif preferences.verbosity == "balanced":
        tail = "\n\nBalanced note: evaluate retrieval quality and cost before scaling."
    else:
        tail = ""
    return f"{intro}\n\nEvidence:\n{evidence}\n\nRecommendation: {guidance}{code}{tail}"
