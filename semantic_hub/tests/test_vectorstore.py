from __future__ import annotations

import random

import pytest

from semantic_hub.rag.guardrails import PersistenceError
from semantic_hub.rag.types import ChunkRecord
from semantic_hub.vectorstore.base import cosine_distance
from semantic_hub.vectorstore.inmemory import InMemoryChunkStore
from semantic_hub.vectorstore.sql import SQLChunkStore

DIM = 4


def _record(document_id: str, start: int, embedding: list[float], text: str = "abcd") -> ChunkRecord:
    return ChunkRecord(
        document_id=document_id,
        text=text,
        start_char=start,
        end_char=start + len(text),
        embedding=embedding,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryChunkStore(dimension=DIM)
    return SQLChunkStore("sqlite://", dimension=DIM)


def test_cosine_distance_bounds() -> None:
    assert cosine_distance([1.0, 0.0], [1.0, 0.0]) == pytest.approx(0.0)
    assert cosine_distance([1.0, 0.0], [0.0, 1.0]) == pytest.approx(1.0)
    assert cosine_distance([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(2.0)
    assert cosine_distance([0.0, 0.0], [1.0, 0.0]) == 1.0


def test_query_orders_by_distance(store) -> None:
    store.insert_chunks(
        [
            _record("doc", 0, [0.0, 1.0, 0.0, 0.0]),
            _record("doc", 4, [1.0, 0.0, 0.0, 0.0]),
            _record("doc", 8, [1.0, 1.0, 0.0, 0.0]),
        ]
    )

    results = store.query_nearest([1.0, 0.0, 0.0, 0.0], 3)

    assert [result.start_char for result in results] == [4, 8, 0]
    assert results[0].score == pytest.approx(1.0)


def test_query_results_are_non_decreasing_for_random_data(store) -> None:
    rng = random.Random(7)
    store.insert_chunks(
        [_record("doc", idx * 4, [rng.uniform(-1, 1) for _ in range(DIM)]) for idx in range(25)]
    )

    results = store.query_nearest([rng.uniform(-1, 1) for _ in range(DIM)], 10)

    assert len(results) == 10
    distances = [result.distance for result in results]
    assert distances == sorted(distances)


def test_ties_keep_insertion_order(store) -> None:
    ids = store.insert_chunks([_record("doc", idx * 4, [1.0, 0.0, 0.0, 0.0]) for idx in range(3)])

    results = store.query_nearest([1.0, 0.0, 0.0, 0.0], 3)

    assert [result.chunk_id for result in results] == ids


def test_query_scoped_to_document(store) -> None:
    store.insert_chunks(
        [
            _record("a", 0, [1.0, 0.0, 0.0, 0.0]),
            _record("b", 0, [1.0, 0.0, 0.0, 0.0]),
            _record("b", 4, [0.0, 1.0, 0.0, 0.0]),
        ]
    )

    scoped = store.query_nearest([1.0, 0.0, 0.0, 0.0], 5, document_id="b")
    unscoped = store.query_nearest([1.0, 0.0, 0.0, 0.0], 5)

    assert {result.document_id for result in scoped} == {"b"}
    assert len(scoped) == 2
    assert {result.document_id for result in unscoped} == {"a", "b"}


def test_non_positive_k_returns_nothing(store) -> None:
    store.insert_chunk(_record("doc", 0, [1.0, 0.0, 0.0, 0.0]))

    assert store.query_nearest([1.0, 0.0, 0.0, 0.0], 0) == []


def test_dimension_mismatch_rejected_without_partial_write(store) -> None:
    good = _record("doc", 0, [1.0, 0.0, 0.0, 0.0])
    bad = _record("doc", 4, [1.0, 0.0])

    with pytest.raises(PersistenceError):
        store.insert_chunks([good, bad])

    assert store.stats()["chunk_count"] == 0


def test_query_vector_dimension_checked(store) -> None:
    with pytest.raises(PersistenceError):
        store.query_nearest([1.0, 0.0], 3)


def test_replace_swaps_only_that_document(store) -> None:
    store.insert_chunks(
        [
            _record("a", 0, [1.0, 0.0, 0.0, 0.0]),
            _record("a", 4, [1.0, 0.0, 0.0, 0.0]),
            _record("b", 0, [0.0, 1.0, 0.0, 0.0]),
        ]
    )

    removed, ids = store.replace_document_chunks("a", [_record("a", 0, [0.0, 0.0, 1.0, 0.0])])

    assert removed == 2
    assert len(ids) == 1
    assert store.stats()["chunk_count"] == 2
    assert store.delete_document_chunks("b") == 1
    assert store.stats()["chunk_count"] == 1


def test_failed_replace_keeps_previous_chunks(store) -> None:
    store.insert_chunk(_record("a", 0, [1.0, 0.0, 0.0, 0.0]))

    with pytest.raises(PersistenceError):
        store.replace_document_chunks("a", [_record("a", 0, [1.0])])

    assert store.stats()["chunk_count"] == 1


def test_health_and_stats(store) -> None:
    assert store.health()["ok"] is True
    assert store.stats()["embedding_dimension"] == DIM
