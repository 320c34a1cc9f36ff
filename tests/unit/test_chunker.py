import pytest

from research_agent.config import ChunkingConfig
from research_agent.ingest.chunker import CHUNK_STRATEGIES, Chunker


def test_fixed_window_overlap_and_bounds() -> None:
    text = "abcdefghij" * 250
    chunks = Chunker().chunk(text, "fixed")

    assert len(chunks) == 4
    assert all(len(chunk.text) <= 900 for chunk in chunks)
    assert chunks[0].text == text[:900]
    assert chunks[1].start == 780
    assert chunks[1].text == text[780:1680]
    assert chunks[-1].end == len(text)


def test_short_input_yields_single_trimmed_chunk() -> None:
    chunker = Chunker()
    for strategy in CHUNK_STRATEGIES:
        chunks = chunker.chunk("   Retrieval needs evaluation.  \n", strategy)
        assert [chunk.text for chunk in chunks] == ["Retrieval needs evaluation."]


@pytest.mark.parametrize("strategy", CHUNK_STRATEGIES)
def test_empty_or_whitespace_input_yields_no_chunks(strategy: str) -> None:
    assert Chunker().chunk("", strategy) == []
    assert Chunker().chunk(" \n\t \n", strategy) == []


def test_heading_aware_labels_chunks() -> None:
    text = (
        "Preamble line.\n"
        "# Intro\nRAG systems rely on chunking.\n\n"
        "# Tradeoffs\nSemantic chunking improves context continuity.\n"
        "Overview:\nClosing remarks."
    )
    chunks = Chunker().chunk(text, "heading-aware")

    assert [chunk.heading for chunk in chunks] == ["Document", "Intro", "Tradeoffs", "Overview"]
    assert chunks[1].text == "RAG systems rely on chunking."
    assert chunks[2].text == "Semantic chunking improves context continuity."

    normalized = Chunker.normalize(text)
    for chunk in chunks:
        assert normalized[chunk.start : chunk.end] == chunk.text


def test_heading_aware_force_flushes_large_sections() -> None:
    line = "Lexical retrieval scales linearly with corpus size today."
    text = "\n".join([line] * 60)

    chunks = Chunker().chunk(text, "heading-aware")

    assert len(chunks) > 1
    assert all(len(chunk.text) <= 1000 + len(line) + 1 for chunk in chunks)
    assert all(chunk.heading == "Document" for chunk in chunks)
    assert sum(chunk.text.count(line) for chunk in chunks) == 60


def test_semantic_packs_paragraphs_up_to_limit() -> None:
    paragraphs = [chr(ord("a") + i) * 400 for i in range(4)]
    text = "\n\n".join(paragraphs)

    chunks = Chunker().chunk(text, "semantic")

    assert [chunk.text for chunk in chunks] == [
        "\n\n".join(paragraphs[:2]),
        "\n\n".join(paragraphs[2:]),
    ]
    assert chunks[1].start == text.index(paragraphs[2])
    assert all(chunk.heading is None for chunk in chunks)


def test_semantic_without_paragraph_breaks_falls_back_to_fixed() -> None:
    text = "x" * 2000
    semantic = Chunker().chunk(text, "semantic")
    fixed = Chunker().chunk(text, "fixed")

    assert semantic == fixed
    assert len(semantic) == 3


@pytest.mark.parametrize("strategy", CHUNK_STRATEGIES)
def test_chunks_are_never_empty_and_cover_content(strategy: str) -> None:
    text = "\n\n".join(
        f"## Section {i}\nParagraph {i} discusses chunk overlap and recall. " * 3 for i in range(12)
    )
    chunks = Chunker().chunk(text, strategy)
    combined = " ".join(chunk.text for chunk in chunks)

    assert chunks
    assert all(chunk.text.strip() for chunk in chunks)
    for i in range(12):
        assert f"Paragraph {i} discusses" in combined


def test_unknown_strategy_rejected() -> None:
    with pytest.raises(ValueError):
        Chunker().chunk("some text", "sentences")  # type: ignore[arg-type]


def test_overlap_must_be_smaller_than_window() -> None:
    with pytest.raises(ValueError):
        ChunkingConfig(window_chars=100, overlap_chars=100)


@pytest.mark.parametrize("strategy", CHUNK_STRATEGIES)
def test_chunk_text_matches_its_offsets(strategy: str) -> None:
    text = "Alpha paragraph on recall.\n\n\n\nBeta paragraph on precision.\r\n\r\n\r\nGamma: " + "z" * 1200
    normalized = Chunker.normalize(text)

    chunks = Chunker().chunk(text, strategy)

    assert chunks
    for chunk in chunks:
        assert normalized[chunk.start : chunk.end] == chunk.text


def test_semantic_keeps_original_paragraph_separators() -> None:
    text = "First paragraph.\n\n\n\nSecond paragraph."
    chunks = Chunker().chunk(text, "semantic")

    assert [chunk.text for chunk in chunks] == [text]
    assert (chunks[0].start, chunks[0].end) == (0, len(text))
