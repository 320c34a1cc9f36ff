"""Prompt text for synthesis, clarification and memory summaries."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from research_agent.config import Mode
from research_agent.types import UserPreferences

_QUICK_INSTRUCTION = (
    "You are a senior research engineer. Give a focused, high-signal answer. "
    "Be concise but precise."
)

_DEEP_INSTRUCTION = """
You are a senior research engineer conducting a deep technical analysis. Provide a structured report with:
## Summary
Brief overview of findings.

## Detailed Analysis
Compare at least 3 approaches with tradeoffs. Use tables where appropriate.

## Recommendations
Actionable next steps with rationale.

## Limitations
What's unknown or uncertain.
""".strip()

_DEEP_TRADEOFF_TEMPLATE = """
    {"option": "<approach 1 name>", "pros": ["<pro1>", "<pro2>"], "cons": ["<con1>", "<con2>"]},
    {"option": "<approach 2 name>", "pros": ["<pro1>", "<pro2>"], "cons": ["<con1>", "<con2>"]}"""

_METADATA_INSTRUCTION = """

IMPORTANT: At the very end of your response, include this exact block (it will be parsed and removed from the displayed answer):

```json:metadata
{{
  "followUpQuestions": ["<3 context-specific follow-up questions the user might want to ask next>"],
  "tradeoffs": [{tradeoffs}
  ],
  "confidence": <your confidence in this answer from 0.0 to 1.0, be honest about uncertainty>
}}
```"""

MEMORY_SUMMARY_SYSTEM_PROMPT = (
    "You are a concise summarizer. Given a research query and answer, produce a 1-2 "
    "sentence summary of the key finding and a list of 3-5 topic tags. Respond in JSON: "
    '{"summary": "...", "tags": ["tag1", "tag2"]}'
)


@dataclass(slots=True)
class EvidenceSnippet:
    label: int
    title: str
    url: str
    snippet: str


def build_system_prompt(
    *,
    mode: Mode,
    preferences: UserPreferences,
    evidence: Sequence[EvidenceSnippet],
    memories: Sequence[str],
) -> str:
    sections = [_DEEP_INSTRUCTION if mode == "deep" else _QUICK_INSTRUCTION]

    if preferences.prefers_code_examples:
        sections.append(
            "\nThe user prefers code examples. Include concrete, runnable code snippets "
            "where relevant, in the language the context suggests."
        )
    if preferences.verbosity == "concise":
        sections.append("\nKeep the response concise (under 500 words).")
    elif preferences.verbosity == "detailed":
        sections.append(
            "\nProvide a detailed response with thorough explanations (1000+ words for deep mode)."
        )

    if evidence:
        rendered = "\n\n".join(
            f'[{item.label}] "{item.title}" ({item.url})\n{item.snippet}' for item in evidence
        )
        sections.append(
            "\n\nRelevant context from indexed sources (use these citations inline as "
            f"[1], [2], etc.):\n{rendered}"
        )
        if preferences.citation_style == "footnote":
            sections.append(
                "\n\nIMPORTANT: Mark supporting sources with [n] at the end of each sentence "
                "and list the cited sources under a final 'Sources' heading."
            )
        else:
            sections.append(
                "\n\nIMPORTANT: When referencing information from the sources above, use inline "
                "citation markers like [1], [2], etc. to indicate which source supports each claim."
            )

    if memories:
        remembered = "\n".join(f"- {memory}" for memory in memories)
        sections.append(f"\n\nFrom prior research sessions with this user:\n{remembered}")

    tradeoffs = _DEEP_TRADEOFF_TEMPLATE if mode == "deep" else ""
    sections.append(_METADATA_INSTRUCTION.format(tradeoffs=tradeoffs))
    return "".join(sections)


def build_clarification_request(query: str) -> str:
    return (
        f'The user asked: "{query}"\n\n'
        "This query seems ambiguous or too short. Ask a specific clarifying question and "
        "explain what additional details would help you provide a better, more targeted answer."
    )


def build_memory_summary_request(query: str, answer: str) -> str:
    return f"Query: {query}\n\nAnswer (first 500 chars): {answer[:500]}"
