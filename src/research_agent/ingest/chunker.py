"""Fixed-window, heading-aware and semantic chunking implementation."""

from __future__ import annotations

import re
from dataclasses import dataclass

from research_agent.config import ChunkingConfig
from research_agent.types import ChunkStrategy

_HEADING_PATTERN = re.compile(r"^(#{1,6}\s+.+|[A-Z][A-Za-z0-9 /-]{3,}:)$")
_PARAGRAPH_BREAK = re.compile(r"\n{2,}")

CHUNK_STRATEGIES: tuple[ChunkStrategy, ...] = ("fixed", "heading-aware", "semantic")


@dataclass(slots=True, frozen=True)
class ChunkSpan:
    """One chunk of text with offsets into the normalized source."""

    text: str
    start: int
    end: int
    heading: str | None = None


class Chunker:
    """Splits raw document text into bounded passages.

    Offsets refer to the normalized text: CRLF line endings folded to LF and
    surrounding whitespace stripped. Each chunk's text is exactly the
    normalized text between its offsets.

    Strategies:
    1. `fixed` slides a `window_chars` window forward with `overlap_chars`
       of overlap so ideas spanning a boundary survive in at least one chunk.
    2. `heading-aware` starts a new chunk at every markdown heading or short
       capitalized line ending in `:` and labels the chunk with it. A chunk is
       also flushed once its buffer grows past `max_chunk_chars`.
    3. `semantic` greedily packs blank-line-delimited paragraphs into buckets
       of at most `max_chunk_chars` (a single oversized paragraph still forms
       its own bucket). Text without paragraph boundaries is chunked with the
       fixed window instead.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()

    def chunk(self, text: str, strategy: ChunkStrategy) -> list[ChunkSpan]:
        normalized = self.normalize(text)
        if not normalized:
            return []
        if strategy == "fixed":
            return self._chunk_fixed(normalized)
        if strategy == "heading-aware":
            return self._chunk_heading_aware(normalized)
        if strategy == "semantic":
            return self._chunk_semantic(normalized)
        raise ValueError(f"Unknown chunk strategy: {strategy}")

    @staticmethod
    def normalize(text: str) -> str:
        return text.replace("\r\n", "\n").strip()

    def _chunk_fixed(self, text: str) -> list[ChunkSpan]:
        size = self.config.window_chars
        overlap = self.config.overlap_chars
        spans: list[ChunkSpan] = []
        cursor = 0

        while cursor < len(text):
            end = min(len(text), cursor + size)
            span = _trimmed_span(text[cursor:end], cursor)
            if span is not None:
                spans.append(span)
            if end == len(text):
                break
            cursor = max(end - overlap, cursor + 1)

        return spans

    def _chunk_heading_aware(self, text: str) -> list[ChunkSpan]:
        spans: list[ChunkSpan] = []
        heading = self.config.default_heading
        buffer: list[str] = []
        buffer_start = 0
        buffer_length = 0
        line_start = 0

        def flush() -> None:
            nonlocal buffer, buffer_length
            span = _trimmed_span("\n".join(buffer), buffer_start, heading=heading)
            if span is not None:
                spans.append(span)
            buffer = []
            buffer_length = 0

        for raw_line in text.split("\n"):
            offset = line_start
            line_start += len(raw_line) + 1
            line = raw_line.strip()

            if _HEADING_PATTERN.match(line):
                flush()
                heading = re.sub(r"^#+\s*", "", line).removesuffix(":").strip()
                continue

            if not buffer:
                buffer_start = offset
                buffer_length = len(raw_line)
            else:
                buffer_length += len(raw_line) + 1
            buffer.append(raw_line)

            if buffer_length > self.config.max_chunk_chars:
                flush()

        flush()
        return spans

    def _chunk_semantic(self, text: str) -> list[ChunkSpan]:
        paragraphs = _split_paragraphs(text)
        if len(paragraphs) < 2:
            return self._chunk_fixed(text)

        spans: list[ChunkSpan] = []
        bucket: list[ChunkSpan] = []

        def emit() -> None:
            start, end = bucket[0].start, bucket[-1].end
            spans.append(ChunkSpan(text=text[start:end], start=start, end=end))

        for paragraph in paragraphs:
            if bucket and paragraph.end - bucket[0].start > self.config.max_chunk_chars:
                emit()
                bucket = [paragraph]
                continue
            bucket.append(paragraph)

        if bucket:
            emit()
        return spans


def _trimmed_span(
    raw: str, offset: int, *, heading: str | None = None
) -> ChunkSpan | None:
    text = raw.strip()
    if not text:
        return None
    start = offset + len(raw) - len(raw.lstrip())
    return ChunkSpan(text=text, start=start, end=start + len(text), heading=heading)


def _split_paragraphs(text: str) -> list[ChunkSpan]:
    paragraphs: list[ChunkSpan] = []
    cursor = 0
    for match in _PARAGRAPH_BREAK.finditer(text):
        span = _trimmed_span(text[cursor : match.start()], cursor)
        if span is not None:
            paragraphs.append(span)
        cursor = match.end()
    span = _trimmed_span(text[cursor:], cursor)
    if span is not None:
        paragraphs.append(span)
    return paragraphs
