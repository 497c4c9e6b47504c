from __future__ import annotations

from functools import lru_cache

from semantic_hub.app.settings import settings
from semantic_hub.metadata.documents import DocumentStore
from semantic_hub.metadata.store import IngestionRunStore
from semantic_hub.rag.answerer import ExtractiveAnswerer
from semantic_hub.rag.embeddings import (
    EmbeddingChain,
    EmbeddingConfigReport,
    build_embedding_chain,
    describe_embedding_chain,
)
from semantic_hub.rag.llm import SynthesizerChain, build_synthesizer_chain
from semantic_hub.rag.pipeline import IngestionPipeline, QueryPipeline
from semantic_hub.vectorstore.base import ChunkStore
from semantic_hub.vectorstore.inmemory import InMemoryChunkStore
from semantic_hub.vectorstore.milvus import MilvusChunkStore, MilvusConfig
from semantic_hub.vectorstore.sql import SQLChunkStore


@lru_cache
def get_document_store() -> DocumentStore:
    return DocumentStore(settings.database_uri)


@lru_cache
def get_run_store() -> IngestionRunStore | None:
    if not settings.metadata_db_uri:
        return None
    return IngestionRunStore(settings.metadata_db_uri)


@lru_cache
def get_chunk_store() -> ChunkStore:
    return build_chunk_store()


@lru_cache
def get_embedding_chain() -> EmbeddingChain:
    return build_embedding_chain(
        settings.embedding_providers,
        dimension=settings.embedding_dimension,
        timeout=settings.provider_timeout,
        openai_api_key=settings.openai_api_key,
        openai_base_url=settings.openai_base_url,
        openai_model=settings.openai_embedding_model,
        gemini_api_key=settings.gemini_api_key,
        gemini_model=settings.gemini_embedding_model,
        ollama_base_url=settings.ollama_base_url,
        ollama_model=settings.ollama_embedding_model,
    )


@lru_cache
def get_synthesizer_chain() -> SynthesizerChain:
    return build_synthesizer_chain(
        settings.llm_providers,
        openai_api_key=settings.openai_api_key,
        openai_base_url=settings.openai_base_url,
        openai_model=settings.openai_chat_model,
        gemini_api_key=settings.gemini_api_key,
        gemini_model=settings.gemini_chat_model,
        ollama_base_url=settings.ollama_base_url,
        ollama_model=settings.ollama_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.provider_timeout,
    )


@lru_cache
def get_ingestion_pipeline() -> IngestionPipeline:
    return IngestionPipeline(
        documents=get_document_store(),
        chunks=get_chunk_store(),
        embedder=get_embedding_chain(),
        chunk_size=settings.chunk_size,
        reingest_mode=settings.reingest_mode,
        embed_workers=settings.embed_workers,
        run_store=get_run_store(),
    )


@lru_cache
def get_query_pipeline() -> QueryPipeline:
    return QueryPipeline(
        embedder=get_embedding_chain(),
        chunks=get_chunk_store(),
        synthesizer=get_synthesizer_chain(),
        answerer=ExtractiveAnswerer(max_chars=settings.fallback_answer_chars),
        top_k=settings.top_k,
    )


def reset_pipeline_cache() -> None:
    get_query_pipeline.cache_clear()
    get_ingestion_pipeline.cache_clear()
    get_synthesizer_chain.cache_clear()
    get_embedding_chain.cache_clear()
    get_chunk_store.cache_clear()
    get_run_store.cache_clear()
    get_document_store.cache_clear()


def get_embedding_config_report() -> EmbeddingConfigReport:
    return describe_embedding_chain(get_embedding_chain())


def build_chunk_store() -> ChunkStore:
    backend = settings.vectorstore_backend.lower().strip()
    if backend == "milvus":
        config = MilvusConfig(
            uri=settings.milvus_uri,
            token=settings.milvus_token,
            collection=settings.milvus_collection,
            consistency=settings.milvus_consistency,
            index_type=settings.milvus_index_type,
            nlist=settings.milvus_nlist,
            nprobe=settings.milvus_nprobe,
            hnsw_m=settings.milvus_hnsw_m,
            hnsw_ef_construction=settings.milvus_hnsw_ef_construction,
            hnsw_ef=settings.milvus_hnsw_ef,
        )
        return MilvusChunkStore(dimension=settings.embedding_dimension, config=config)
    if backend == "sql":
        return SQLChunkStore(settings.database_uri, dimension=settings.embedding_dimension)
    return InMemoryChunkStore(dimension=settings.embedding_dimension)
