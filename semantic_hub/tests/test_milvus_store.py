from __future__ import annotations

import pytest

from semantic_hub.rag.guardrails import PersistenceError
from semantic_hub.rag.types import ChunkRecord
from semantic_hub.vectorstore.milvus import MilvusChunkStore, MilvusConfig

DIM = 4


class _FakeCollection:
    """Collection stand-in whose first delete call fails."""

    def __init__(self) -> None:
        self.rows: list[dict] = []
        self.delete_calls: list[str] = []

    def insert(self, rows: list[dict]) -> None:
        self.rows.extend(rows)

    def flush(self) -> None:
        return None

    def delete(self, expr: str) -> None:
        self.delete_calls.append(expr)
        if len(self.delete_calls) == 1:
            raise RuntimeError("milvus unavailable")
        # Only the rollback form "chunk_id in [...]" reaches this point.
        self.rows = [row for row in self.rows if f'"{row["chunk_id"]}"' not in expr]


def _store(collection: _FakeCollection) -> MilvusChunkStore:
    store = object.__new__(MilvusChunkStore)
    store.dimension = DIM
    store.config = MilvusConfig(
        uri="http://localhost:19530",
        token=None,
        collection="chunks",
        consistency="Strong",
        index_type="IVF_FLAT",
        nlist=16,
        nprobe=4,
        hnsw_m=16,
        hnsw_ef_construction=200,
        hnsw_ef=64,
    )
    store.collection = collection
    return store


def _record(start: int) -> ChunkRecord:
    return ChunkRecord(
        document_id="doc-1",
        text="abcd",
        start_char=start,
        end_char=start + 4,
        embedding=[1.0, 0.0, 0.0, 0.0],
    )


def test_failed_replace_removes_new_chunks() -> None:
    collection = _FakeCollection()
    collection.rows.append({"chunk_id": "old-1", "document_id": "doc-1"})
    store = _store(collection)

    with pytest.raises(PersistenceError):
        store.replace_document_chunks("doc-1", [_record(0), _record(4)])

    assert [row["chunk_id"] for row in collection.rows] == ["old-1"]
    assert len(collection.delete_calls) == 2
    assert collection.delete_calls[0].startswith('document_id == "doc-1" and chunk_id not in [')
    assert collection.delete_calls[1].startswith("chunk_id in [")
