"""Extraction of the machine-readable tail from generated answers."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any

from research_agent.types import ParsedMetadata, Tradeoff

MAX_FOLLOW_UPS = 5

METADATA_BLOCK = re.compile(r"```json:metadata\s*\n(?P<body>[\s\S]*?)```")
CONFIDENCE_COMMENT = re.compile(r"<!--\s*confidence:\s*(?P<value>[\d.]+)\s*-->", re.IGNORECASE)


@dataclass(slots=True)
class StructuredOutput:
    clean_answer: str
    metadata: ParsedMetadata = field(default_factory=ParsedMetadata)


def parse_structured_output(raw_text: str | None) -> StructuredOutput:
    """Split generated text into the displayed answer and its metadata.

    Recognized formats, in order:
    1. A fenced ```json:metadata block (follow-ups, tradeoffs, confidence).
    2. A `<!-- confidence: 0.8 -->` comment carrying only confidence.

    The fenced block is removed from the answer even when its JSON does not
    decode; the comment format is then consulted. Never raises.
    """

    text = raw_text or ""
    text, metadata = extract_metadata_block(text)
    text, comment_confidence = extract_confidence_comment(text)

    if metadata is None:
        metadata = ParsedMetadata(confidence=comment_confidence)
    return StructuredOutput(clean_answer=text.strip(), metadata=metadata)


def extract_metadata_block(text: str) -> tuple[str, ParsedMetadata | None]:
    match = METADATA_BLOCK.search(text)
    if match is None:
        return text, None

    remaining = (text[: match.start()] + text[match.end() :]).strip()
    try:
        payload = json.loads(match.group("body"))
    except (ValueError, RecursionError):
        return remaining, None
    if not isinstance(payload, dict):
        return remaining, None
    return remaining, coerce_metadata(payload)


def extract_confidence_comment(text: str) -> tuple[str, float | None]:
    match = CONFIDENCE_COMMENT.search(text)
    if match is None:
        return text, None
    cleaned = CONFIDENCE_COMMENT.sub("", text).strip()
    try:
        value = float(match.group("value"))
    except ValueError:
        return cleaned, None
    return cleaned, _clamp_unit(value)


def coerce_metadata(payload: dict[str, Any]) -> ParsedMetadata:
    follow_ups = payload.get("followUpQuestions")
    tradeoffs = payload.get("tradeoffs")
    confidence = payload.get("confidence")

    questions = (
        [item.strip() for item in follow_ups if isinstance(item, str) and item.strip()]
        if isinstance(follow_ups, list)
        else []
    )

    parsed_tradeoffs: list[Tradeoff] = []
    if isinstance(tradeoffs, list):
        for item in tradeoffs:
            if not isinstance(item, dict) or not isinstance(item.get("option"), str):
                continue
            parsed_tradeoffs.append(
                Tradeoff(
                    option=item["option"],
                    pros=_string_list(item.get("pros")),
                    cons=_string_list(item.get("cons")),
                )
            )

    self_confidence = None
    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        try:
            self_confidence = _clamp_unit(float(confidence))
        except OverflowError:
            self_confidence = None

    return ParsedMetadata(
        follow_up_questions=questions[:MAX_FOLLOW_UPS],
        tradeoffs=parsed_tradeoffs,
        confidence=self_confidence,
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _clamp_unit(value: float) -> float | None:
    if not math.isfinite(value):
        return None
    return min(1.0, max(0.0, value))
