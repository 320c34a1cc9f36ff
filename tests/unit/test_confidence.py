import pytest

from research_agent.agent.confidence import (
    ANSWERED_FLOOR,
    CONFIDENCE_CEILING,
    FAILED_FLOOR,
    ConfidenceSignals,
    answer_quality_signal,
    compute_confidence,
    has_code_blocks,
    has_structured_sections,
    raw_confidence,
    self_assessment_signal,
)


def _signals(**overrides: object) -> ConfidenceSignals:
    base = dict(
        avg_relevance=0.5,
        sources_count=1,
        chunks_found=2,
        max_chunks=4,
        answer_length=300,
        has_structured_sections=True,
        llm_self_confidence=0.8,
    )
    base.update(overrides)
    return ConfidenceSignals(**base)  # type: ignore[arg-type]


def test_weighted_score_with_retrieval() -> None:
    # 0.5*0.30 + 0.65*0.25 + 0.8*0.25 + (1/3)*0.20
    assert compute_confidence(_signals()) == pytest.approx(0.579)


def test_ambiguity_penalty() -> None:
    assert compute_confidence(_signals(clarification_required=True)) == pytest.approx(0.429)


def test_without_retrieval_reweights_signals() -> None:
    signals = _signals(chunks_found=0, avg_relevance=0.0, sources_count=0)
    # 0.65*0.45 + 0.8*0.40
    assert raw_confidence(signals) == pytest.approx(0.6125)


def test_floor_for_answered_and_failed_runs() -> None:
    empty = ConfidenceSignals()
    assert compute_confidence(empty) == ANSWERED_FLOOR

    failed = ConfidenceSignals(llm_failed=True)
    assert raw_confidence(failed) < 0
    assert compute_confidence(failed) == FAILED_FLOOR


def test_ceiling() -> None:
    perfect = ConfidenceSignals(
        avg_relevance=1.0,
        sources_count=3,
        chunks_found=4,
        answer_length=600,
        llm_self_confidence=1.0,
    )
    assert compute_confidence(perfect) == CONFIDENCE_CEILING


def test_self_assessment_defaults() -> None:
    assert self_assessment_signal(ConfidenceSignals()) == 0.7
    assert self_assessment_signal(ConfidenceSignals(llm_failed=True)) == 0.2
    assert self_assessment_signal(ConfidenceSignals(llm_self_confidence=0.1)) == 0.1


def test_deep_mode_expects_longer_answers() -> None:
    quick = ConfidenceSignals(answer_length=600)
    deep = ConfidenceSignals(answer_length=600, mode="deep")
    assert answer_quality_signal(quick) == 1.0
    assert answer_quality_signal(deep) == pytest.approx(0.25)


def test_structure_detection() -> None:
    assert has_code_blocks("text\n```python\nprint(1)\n```")
    assert not has_code_blocks("inline `code` only")
    assert has_structured_sections("intro\n### Details\nbody")
    assert not has_structured_sections("# Title only\nbody")
