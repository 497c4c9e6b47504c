from __future__ import annotations

"""In-memory chunk store for local testing and small corpora."""

import threading
import uuid
from dataclasses import dataclass, field
from typing import Iterable

from semantic_hub.rag.types import ChunkRecord, RetrievalResult
from semantic_hub.vectorstore.base import (
    cosine_distance,
    validate_query_vector,
    validate_record,
)


@dataclass
class _StoredChunk:
    chunk_id: str
    record: ChunkRecord


@dataclass
class InMemoryChunkStore:
    """Chunk store with brute-force cosine distance search."""
    dimension: int
    chunks: list[_StoredChunk] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def insert_chunk(self, record: ChunkRecord) -> str:
        """Store a single chunk."""
        return self.insert_chunks([record])[0]

    def insert_chunks(self, records: Iterable[ChunkRecord]) -> list[str]:
        """Validate every chunk first so a bad one leaves the store untouched."""
        batch = list(records)
        for record in batch:
            validate_record(record, self.dimension)
        stored = [_StoredChunk(chunk_id=str(uuid.uuid4()), record=record) for record in batch]
        with self._lock:
            self.chunks.extend(stored)
        return [item.chunk_id for item in stored]

    def replace_document_chunks(
        self, document_id: str, records: Iterable[ChunkRecord]
    ) -> tuple[int, list[str]]:
        """Swap a document's chunks for a new set in one step."""
        batch = list(records)
        for record in batch:
            validate_record(record, self.dimension)
        stored = [_StoredChunk(chunk_id=str(uuid.uuid4()), record=record) for record in batch]
        with self._lock:
            kept = [item for item in self.chunks if item.record.document_id != document_id]
            removed = len(self.chunks) - len(kept)
            self.chunks = kept + stored
        return removed, [item.chunk_id for item in stored]

    def delete_document_chunks(self, document_id: str) -> int:
        """Delete a document's chunks."""
        with self._lock:
            kept = [item for item in self.chunks if item.record.document_id != document_id]
            removed = len(self.chunks) - len(kept)
            self.chunks = kept
        return removed

    def query_nearest(
        self, vector: list[float], k: int, document_id: str | None = None
    ) -> list[RetrievalResult]:
        """Rank stored chunks by cosine distance; ties keep insertion order."""
        validate_query_vector(vector, self.dimension)
        if k <= 0:
            return []
        with self._lock:
            candidates = list(self.chunks)
        if document_id is not None:
            candidates = [item for item in candidates if item.record.document_id == document_id]
        scored = [
            RetrievalResult(
                chunk_id=item.chunk_id,
                document_id=item.record.document_id,
                text=item.record.text,
                start_char=item.record.start_char,
                end_char=item.record.end_char,
                distance=cosine_distance(vector, item.record.embedding),
            )
            for item in candidates
        ]
        scored.sort(key=lambda result: result.distance)
        return scored[:k]

    def stats(self) -> dict[str, int | str]:
        """Return basic stats for the chunk store."""
        return {
            "backend": "memory",
            "chunk_count": len(self.chunks),
            "embedding_dimension": self.dimension,
        }

    def health(self) -> dict[str, str | bool]:
        return {
            "backend": "memory",
            "ok": True,
        }
