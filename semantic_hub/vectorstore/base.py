from __future__ import annotations

"""Chunk store contract shared by every vector backend."""

import math
from typing import Iterable, Protocol

from semantic_hub.rag.guardrails import PersistenceError
from semantic_hub.rag.types import ChunkRecord, RetrievalResult


class ChunkStore(Protocol):
    """Persistence and nearest-neighbor lookup for embedded chunks."""
    dimension: int

    def insert_chunk(self, record: ChunkRecord) -> str:
        """Store one chunk and return its ID."""
        raise NotImplementedError

    def insert_chunks(self, records: Iterable[ChunkRecord]) -> list[str]:
        """Store all chunks or none of them."""
        raise NotImplementedError

    def replace_document_chunks(
        self, document_id: str, records: Iterable[ChunkRecord]
    ) -> tuple[int, list[str]]:
        """Drop a document's chunks and store the new set; return (removed, ids)."""
        raise NotImplementedError

    def delete_document_chunks(self, document_id: str) -> int:
        """Delete every chunk of a document."""
        raise NotImplementedError

    def query_nearest(
        self, vector: list[float], k: int, document_id: str | None = None
    ) -> list[RetrievalResult]:
        """Return up to k chunks ordered by ascending cosine distance."""
        raise NotImplementedError

    def stats(self) -> dict[str, int | str]:
        raise NotImplementedError

    def health(self) -> dict[str, str | bool]:
        raise NotImplementedError


def cosine_distance(a: list[float], b: list[float]) -> float:
    """Cosine distance in [0, 2]; a zero vector is treated as orthogonal."""
    dot = math.fsum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 1.0
    return 1.0 - dot / (norm_a * norm_b)


def validate_record(record: ChunkRecord, dimension: int) -> None:
    """Reject chunks that would break offset or dimensionality invariants."""
    if len(record.embedding) != dimension:
        raise PersistenceError(
            f"Embedding dimension mismatch: expected {dimension}, got {len(record.embedding)}"
        )
    if not 0 <= record.start_char < record.end_char:
        raise PersistenceError(
            f"Invalid chunk offsets: [{record.start_char}, {record.end_char})"
        )


def validate_query_vector(vector: list[float], dimension: int) -> None:
    if len(vector) != dimension:
        raise PersistenceError(
            f"Query vector dimension mismatch: expected {dimension}, got {len(vector)}"
        )
