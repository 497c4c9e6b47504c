from __future__ import annotations

import pytest

from semantic_hub.rag.answerer import ExtractiveAnswerer
from semantic_hub.rag.citations import build_context_block, build_sources
from semantic_hub.rag.highlights import build_highlights
from semantic_hub.rag.types import RetrievalResult, Source


def _source(index: int, start: int, end: int) -> Source:
    return Source(
        chunk_id=f"c{index}",
        document_id="doc",
        snippet_index=index,
        start_char=start,
        end_char=end,
        score=0.5,
    )


def _result(chunk_id: str, text: str, start: int, distance: float) -> RetrievalResult:
    return RetrievalResult(
        chunk_id=chunk_id,
        document_id="doc",
        text=text,
        start_char=start,
        end_char=start + len(text),
        distance=distance,
    )


def test_adjacent_ranges_merge_in_start_order() -> None:
    highlights = build_highlights([_source(1, 800, 1600), _source(2, 0, 800), _source(3, 2400, 3200)])

    assert [(item.start_char, item.end_char, item.snippet_indices) for item in highlights] == [
        (0, 1600, [1, 2]),
        (2400, 3200, [3]),
    ]


def test_no_sources_no_highlights() -> None:
    assert build_highlights([]) == []


def test_sources_follow_retrieval_order() -> None:
    results = [_result("b", "second", 6, 0.1), _result("a", "first!", 0, 0.4)]

    sources = build_sources(results)

    assert [(source.chunk_id, source.snippet_index) for source in sources] == [("b", 1), ("a", 2)]
    assert sources[0].score == pytest.approx(0.9)
    assert build_context_block(results) == "SNIPPET 1:\nsecond\n\n---\n\nSNIPPET 2:\nfirst!"


def test_extractive_answer_quotes_prefix_of_top_chunk() -> None:
    answerer = ExtractiveAnswerer(max_chars=5)

    answer = answerer.generate([_result("a", "abcdefghij", 0, 0.2)])

    assert answer == 'Based on the provided context: "abcde"\n\nSOURCES: snippet 1'
