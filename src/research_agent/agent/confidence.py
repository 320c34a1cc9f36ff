"""Multi-signal answer confidence."""

from __future__ import annotations

import re
from dataclasses import dataclass

from research_agent.config import Mode

CONFIDENCE_CEILING = 0.95
ANSWERED_FLOOR = 0.35
FAILED_FLOOR = 0.10

AMBIGUITY_PENALTY = 0.15
FAILURE_PENALTY = 0.20

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_SECTION_HEADING = re.compile(r"^#{2,4}\s+.+", re.MULTILINE)


@dataclass(slots=True)
class ConfidenceSignals:
    avg_relevance: float = 0.0
    sources_count: int = 0
    chunks_found: int = 0
    max_chunks: int = 4
    answer_length: int = 0
    has_code_blocks: bool = False
    has_structured_sections: bool = False
    llm_self_confidence: float | None = None
    clarification_required: bool = False
    llm_failed: bool = False
    mode: Mode = "quick"


def has_code_blocks(text: str) -> bool:
    return bool(_CODE_BLOCK.search(text))


def has_structured_sections(text: str) -> bool:
    return bool(_SECTION_HEADING.search(text))


def retrieval_signal(signals: ConfidenceSignals) -> float:
    coverage = signals.chunks_found / signals.max_chunks if signals.max_chunks > 0 else 0.0
    return min(1.0, signals.avg_relevance * 0.6 + min(1.0, coverage) * 0.4)


def answer_quality_signal(signals: ConfidenceSignals) -> float:
    min_expected_length = 800 if signals.mode == "deep" else 200
    length_score = min(1.0, signals.answer_length / (3 * min_expected_length))
    structure_bonus = (0.15 if signals.has_code_blocks else 0.0) + (
        0.15 if signals.has_structured_sections else 0.0
    )
    return min(1.0, length_score + structure_bonus)


def self_assessment_signal(signals: ConfidenceSignals) -> float:
    if signals.llm_self_confidence is not None:
        return signals.llm_self_confidence
    return 0.2 if signals.llm_failed else 0.7


def coverage_signal(signals: ConfidenceSignals) -> float:
    return min(1.0, signals.sources_count / 3)


def score_with_retrieval(signals: ConfidenceSignals) -> float:
    """Weights 0.30 retrieval / 0.25 answer / 0.25 self-assessment / 0.20 coverage."""
    return (
        retrieval_signal(signals) * 0.30
        + answer_quality_signal(signals) * 0.25
        + self_assessment_signal(signals) * 0.25
        + coverage_signal(signals) * 0.20
    )


def score_without_retrieval(signals: ConfidenceSignals) -> float:
    """Weights 0.45 answer / 0.40 self-assessment / 0.15 coverage; retrieval dropped."""
    return (
        answer_quality_signal(signals) * 0.45
        + self_assessment_signal(signals) * 0.40
        + coverage_signal(signals) * 0.15
    )


def raw_confidence(signals: ConfidenceSignals) -> float:
    """Weighted score after penalties, before clamping."""

    if signals.chunks_found > 0:
        raw = score_with_retrieval(signals)
    else:
        raw = score_without_retrieval(signals)
    if signals.clarification_required:
        raw -= AMBIGUITY_PENALTY
    if signals.llm_failed:
        raw -= FAILURE_PENALTY
    return raw


def compute_confidence(signals: ConfidenceSignals) -> float:
    floor = FAILED_FLOOR if signals.llm_failed else ANSWERED_FLOOR
    return max(floor, min(CONFIDENCE_CEILING, round(raw_confidence(signals), 3)))
