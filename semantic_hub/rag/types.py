from __future__ import annotations

"""Core data types for documents, chunks and retrieval."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Document:
    """Uploaded document with its full extracted text."""
    id: str
    title: str
    text: str
    created_at: datetime


@dataclass(frozen=True)
class ChunkSpan:
    """Contiguous character range of a document's text."""
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class ChunkRecord:
    """Embedded chunk ready to be written to a chunk store."""
    document_id: str
    text: str
    start_char: int
    end_char: int
    embedding: list[float]


@dataclass(frozen=True)
class RetrievalResult:
    """Stored chunk returned by a nearest-neighbor query."""
    chunk_id: str
    document_id: str
    text: str
    start_char: int
    end_char: int
    distance: float

    @property
    def score(self) -> float:
        """Display score derived from distance; not a probability."""
        return 1.0 - self.distance


@dataclass(frozen=True)
class Source:
    """Source attribution for a single retrieved chunk."""
    chunk_id: str
    document_id: str
    snippet_index: int
    start_char: int
    end_char: int
    score: float


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one ingestion run."""
    document_id: str
    ingested: int
    replaced: int = 0


@dataclass(frozen=True)
class QueryAnswer:
    """Answer text with the sources it was built from."""
    answer: str
    sources: list[Source]
    mode: str
