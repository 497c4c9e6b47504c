from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from semantic_hub.rag.embeddings import parse_provider_order

load_dotenv()


@dataclass(frozen=True)
class Settings:
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "1536"))
    chunk_size: int = int(os.getenv("RAG_CHUNK_SIZE", "800"))
    top_k: int = int(os.getenv("RAG_TOP_K", "5"))
    llm_max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "400"))
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))
    provider_timeout: float = float(os.getenv("RAG_PROVIDER_TIMEOUT", "30"))
    embedding_providers_raw: str = os.getenv("RAG_EMBEDDING_PROVIDERS", "gemini,openai,ollama")
    llm_providers_raw: str = os.getenv("RAG_LLM_PROVIDERS", "gemini,openai,ollama")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_embedding_model: str = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    openai_chat_model: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_embedding_model: str = os.getenv("GEMINI_EMBEDDING_MODEL", "models/embedding-001")
    gemini_chat_model: str = os.getenv("GEMINI_CHAT_MODEL", "gemini-2.0-flash")
    ollama_base_url: str | None = os.getenv("OLLAMA_BASE_URL")
    ollama_embedding_model: str = os.getenv("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1")
    vectorstore_backend: str = os.getenv("RAG_VECTORSTORE", "memory")
    database_uri: str = os.getenv("RAG_DATABASE_URI", "sqlite:///semantic_hub.db")
    metadata_db_uri: str | None = os.getenv("RAG_METADATA_DB_URI")
    reingest_mode: str = os.getenv("RAG_REINGEST_MODE", "replace")
    embed_workers: int = int(os.getenv("RAG_EMBED_WORKERS", "1"))
    fallback_answer_chars: int = int(os.getenv("RAG_FALLBACK_ANSWER_CHARS", "250"))
    file_max_bytes: int = int(os.getenv("RAG_FILE_MAX_BYTES", "20971520"))
    metrics_enabled: bool = os.getenv("RAG_METRICS_ENABLED", "true").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    milvus_uri: str = os.getenv("MILVUS_URI", "http://localhost:19530")
    milvus_token: str | None = os.getenv("MILVUS_TOKEN")
    milvus_collection: str = os.getenv("MILVUS_COLLECTION", "semantic_hub_chunks")
    milvus_consistency: str = os.getenv("MILVUS_CONSISTENCY", "Strong")
    milvus_index_type: str = os.getenv("MILVUS_INDEX_TYPE", "IVF_FLAT")
    milvus_nlist: int = int(os.getenv("MILVUS_NLIST", "1024"))
    milvus_nprobe: int = int(os.getenv("MILVUS_NPROBE", "10"))
    milvus_hnsw_m: int = int(os.getenv("MILVUS_HNSW_M", "16"))
    milvus_hnsw_ef_construction: int = int(os.getenv("MILVUS_HNSW_EF_CONSTRUCTION", "200"))
    milvus_hnsw_ef: int = int(os.getenv("MILVUS_HNSW_EF", "64"))

    @property
    def embedding_providers(self) -> list[str]:
        return parse_provider_order(self.embedding_providers_raw)

    @property
    def llm_providers(self) -> list[str]:
        return parse_provider_order(self.llm_providers_raw)


settings = Settings()
