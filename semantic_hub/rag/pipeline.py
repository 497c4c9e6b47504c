from __future__ import annotations

"""Ingestion and query orchestration over the provider chains and stores."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from semantic_hub.loaders.chunking import chunk_text
from semantic_hub.metadata.store import IngestionRunStore
from semantic_hub.rag.answerer import ExtractiveAnswerer
from semantic_hub.rag.citations import (
    SYSTEM_PROMPT,
    build_context_block,
    build_sources,
    build_user_prompt,
)
from semantic_hub.rag.embeddings import EmbeddingChain
from semantic_hub.rag.guardrails import InvalidInputError, PersistenceError, require_text
from semantic_hub.rag.llm import SynthesizerChain
from semantic_hub.rag.types import ChunkRecord, ChunkSpan, IngestResult, QueryAnswer
from semantic_hub.vectorstore.base import ChunkStore

logger = logging.getLogger(__name__)

REINGEST_MODES = {"replace", "append"}


class DocumentSource(Protocol):
    def get_document_text(self, document_id: str) -> str:
        raise NotImplementedError


@dataclass
class IngestionPipeline:
    """Chunk a stored document, embed every chunk, then persist the set in one write."""
    documents: DocumentSource
    chunks: ChunkStore
    embedder: EmbeddingChain
    chunk_size: int = 800
    reingest_mode: str = "replace"
    embed_workers: int = 1
    run_store: IngestionRunStore | None = None

    def __post_init__(self) -> None:
        if self.reingest_mode not in REINGEST_MODES:
            raise ValueError(f"Unsupported reingest mode: {self.reingest_mode}")
        if self.embed_workers < 1:
            raise ValueError("embed_workers must be at least 1")

    def ingest(self, document_id: object) -> IngestResult:
        document_id = require_text(document_id, "document_id")
        text = self.documents.get_document_text(document_id)
        if not text.strip():
            raise InvalidInputError("Document text is empty")
        spans = chunk_text(text, self.chunk_size)
        run_id = self._start_run(document_id)
        try:
            vectors = self._embed_all(spans)
            records = [
                ChunkRecord(
                    document_id=document_id,
                    text=span.text,
                    start_char=span.start,
                    end_char=span.end,
                    embedding=vector,
                )
                for span, vector in zip(spans, vectors)
            ]
            replaced = 0
            if self.reingest_mode == "replace":
                replaced, ids = self.chunks.replace_document_chunks(document_id, records)
            else:
                ids = self.chunks.insert_chunks(records)
        except PersistenceError as exc:
            logger.error(
                "ingest_failed",
                extra={"document_id": document_id, "error": type(exc).__name__},
            )
            self._fail_run(run_id, type(exc).__name__)
            raise
        self._complete_run(run_id, len(ids), len(spans))
        logger.info(
            "ingest_complete",
            extra={
                "document_id": document_id,
                "ingested": len(ids),
                "replaced": replaced,
                "mode": self.reingest_mode,
                "providers": self.embedder.provider_names,
            },
        )
        return IngestResult(document_id=document_id, ingested=len(ids), replaced=replaced)

    def _embed_all(self, spans: list[ChunkSpan]) -> list[list[float]]:
        texts = [span.text for span in spans]
        if self.embed_workers == 1 or len(texts) < 2:
            return [self.embedder.embed(text) for text in texts]
        with ThreadPoolExecutor(max_workers=self.embed_workers) as pool:
            # map() yields results in submission order.
            return list(pool.map(self.embedder.embed, texts))

    def _start_run(self, document_id: str) -> str | None:
        if self.run_store is None:
            return None
        return self.run_store.record_start(document_id, self.reingest_mode)

    def _complete_run(self, run_id: str | None, ingested: int, chunk_count: int) -> None:
        # Chunks are already committed here; a run-log failure must not fail the ingest.
        if self.run_store is None or run_id is None:
            return
        try:
            self.run_store.record_complete(run_id, ingested, chunk_count)
        except PersistenceError:
            logger.warning("ingest_run_log_failed", extra={"run_id": run_id})

    def _fail_run(self, run_id: str | None, error: str) -> None:
        if self.run_store is None or run_id is None:
            return
        try:
            self.run_store.record_failure(run_id, error)
        except PersistenceError:
            logger.warning("ingest_run_log_failed", extra={"run_id": run_id})


@dataclass
class QueryPipeline:
    """Retrieve the nearest chunks for a question and answer from them."""
    embedder: EmbeddingChain
    chunks: ChunkStore
    synthesizer: SynthesizerChain
    answerer: ExtractiveAnswerer
    top_k: int = 5

    async def answer(
        self,
        question: object,
        document_id: str | None = None,
        top_k: int | None = None,
    ) -> QueryAnswer:
        question = require_text(question, "question")
        limit = top_k if top_k is not None else self.top_k
        vector = await asyncio.to_thread(self.embedder.embed, question)
        results = await asyncio.to_thread(self.chunks.query_nearest, vector, limit, document_id)
        logger.info(
            "retrieval_complete",
            extra={
                "results": len(results),
                "query_length": len(question),
                "document_id": document_id,
            },
        )
        prompt = build_user_prompt(question, build_context_block(results))
        text = await self.synthesizer.synthesize(SYSTEM_PROMPT, prompt)
        mode = "llm"
        if text is None:
            logger.info("answer_fallback_extractive", extra={"results": len(results)})
            text = self.answerer.generate(results)
            mode = "extractive"
        return QueryAnswer(answer=text, sources=build_sources(results), mode=mode)
