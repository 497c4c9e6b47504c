from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class DocumentResponse(BaseModel):
    id: str
    title: str
    text: str
    created_at: datetime


class DocumentSummary(BaseModel):
    id: str
    title: str
    created_at: datetime
    length: int


# Blank or missing fields are rejected by the pipelines with a 400.
class IngestRequest(BaseModel):
    document_id: str | None = None


class IngestResponse(BaseModel):
    status: str = "ok"
    document_id: str
    ingested: int


class QueryRequest(BaseModel):
    question: str | None = None
    document_id: str | None = None
    top_k: int | None = Field(default=None, ge=1, le=50)


class SourceChunk(BaseModel):
    chunk_id: str
    document_id: str
    snippet_index: int
    start_char: int
    end_char: int
    score: float


class HighlightRange(BaseModel):
    start_char: int
    end_char: int
    snippet_indices: list[int]


class QueryResponse(BaseModel):
    answer: str
    sources: list[SourceChunk]
    highlights: list[HighlightRange] = Field(default_factory=list)
    mode: Literal["llm", "extractive"]
    request_id: str


class StatsResponse(BaseModel):
    backend: str
    chunk_count: int
    embedding_dimension: int
    collection: str | None = None
    embedding_providers: list[str] = Field(default_factory=list)
    llm_providers: list[str] = Field(default_factory=list)


class StatsHealthResponse(BaseModel):
    backend: str
    ok: bool
    detail: str | None = None
    collection: str | None = None


class EmbeddingHealthResponse(BaseModel):
    providers: list[str]
    dimension: int
    status: str
    detail: str | None = None
