from __future__ import annotations

"""Milvus-backed chunk store."""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Iterable

from semantic_hub.rag.embeddings import EmbeddingConfigError
from semantic_hub.rag.guardrails import PersistenceError
from semantic_hub.rag.types import ChunkRecord, RetrievalResult
from semantic_hub.vectorstore.base import validate_query_vector, validate_record

logger = logging.getLogger(__name__)


class MilvusDependencyError(RuntimeError):
    """Raised when Milvus dependencies are missing."""
    pass


@dataclass
class MilvusConfig:
    """Configuration for Milvus connection and indexing."""
    uri: str
    token: str | None
    collection: str
    consistency: str
    index_type: str
    nlist: int
    nprobe: int
    hnsw_m: int
    hnsw_ef_construction: int
    hnsw_ef: int
    max_text_length: int = 65535


@dataclass
class MilvusChunkStore:
    """Chunk store on a Milvus collection using the COSINE metric."""
    dimension: int
    config: MilvusConfig

    def __post_init__(self) -> None:
        """Connect to Milvus and ensure collection exists."""
        try:
            from pymilvus import connections
        except ImportError as exc:
            raise MilvusDependencyError("pymilvus is required for MilvusChunkStore") from exc
        if self.dimension <= 0:
            raise EmbeddingConfigError(
                "Embedding dimension must be set before initializing MilvusChunkStore"
            )
        connections.connect(
            alias="default",
            uri=self.config.uri,
            token=self.config.token,
        )
        self.ensure_collection()

    def ensure_collection(self) -> None:
        """Create collection schema and index when missing."""
        from pymilvus import Collection, CollectionSchema, DataType, FieldSchema, utility

        if utility.has_collection(self.config.collection):
            self.collection = Collection(self.config.collection, consistency_level=self.config.consistency)
            existing_dim = self._existing_embedding_dim()
            if existing_dim is not None and existing_dim != self.dimension:
                raise EmbeddingConfigError(
                    "Milvus collection embedding dimension mismatch: "
                    f"{existing_dim} (collection) vs {self.dimension} (configured). "
                    "Update EMBEDDING_DIMENSION or use a new MILVUS_COLLECTION."
                )
            return

        fields = [
            FieldSchema(name="chunk_id", dtype=DataType.VARCHAR, is_primary=True, max_length=64),
            FieldSchema(name="document_id", dtype=DataType.VARCHAR, max_length=64),
            FieldSchema(
                name="chunk_text",
                dtype=DataType.VARCHAR,
                max_length=self.config.max_text_length,
            ),
            FieldSchema(name="start_char", dtype=DataType.INT64),
            FieldSchema(name="end_char", dtype=DataType.INT64),
            FieldSchema(name="embedding", dtype=DataType.FLOAT_VECTOR, dim=self.dimension),
        ]
        schema = CollectionSchema(fields=fields, description="Semantic hub document chunks")
        self.collection = Collection(
            self.config.collection,
            schema,
            consistency_level=self.config.consistency,
        )
        self._create_index()

    def _create_index(self) -> None:
        index_params = {
            "index_type": self.config.index_type,
            "metric_type": "COSINE",
            "params": {"nlist": self.config.nlist},
        }
        if self.config.index_type.upper() == "HNSW":
            index_params = {
                "index_type": "HNSW",
                "metric_type": "COSINE",
                "params": {
                    "M": self.config.hnsw_m,
                    "efConstruction": self.config.hnsw_ef_construction,
                },
            }
        self.collection.create_index(field_name="embedding", index_params=index_params)

    def _existing_embedding_dim(self) -> int | None:
        """Read embedding dimension from existing collection schema."""
        for field in self.collection.schema.fields:
            if field.name != "embedding":
                continue
            params = getattr(field, "params", None)
            dim = params.get("dim") if isinstance(params, dict) else None
            if dim is None:
                dim = getattr(field, "dim", None)
            try:
                return int(dim) if dim is not None else None
            except (TypeError, ValueError):
                return None
        return None

    def insert_chunk(self, record: ChunkRecord) -> str:
        return self.insert_chunks([record])[0]

    def insert_chunks(self, records: Iterable[ChunkRecord]) -> list[str]:
        """Insert a batch of chunks with a single insert call."""
        batch = list(records)
        for record in batch:
            validate_record(record, self.dimension)
            if len(record.text) > self.config.max_text_length:
                raise PersistenceError(
                    f"Chunk text exceeds Milvus limit of {self.config.max_text_length} characters"
                )
        if not batch:
            return []
        rows = [
            {
                "chunk_id": str(uuid.uuid4()),
                "document_id": record.document_id,
                "chunk_text": record.text,
                "start_char": record.start_char,
                "end_char": record.end_char,
                "embedding": record.embedding,
            }
            for record in batch
        ]
        try:
            self.collection.insert(rows)
            self.collection.flush()
        except Exception as exc:
            raise PersistenceError(f"Milvus insert failed: {type(exc).__name__}") from exc
        return [row["chunk_id"] for row in rows]

    def replace_document_chunks(
        self, document_id: str, records: Iterable[ChunkRecord]
    ) -> tuple[int, list[str]]:
        """Insert the new set, then drop the document's older chunks.

        A failed insert leaves the previous chunks in place. A failed delete
        removes the freshly inserted set again before the error propagates.
        """
        ids = self.insert_chunks(records)
        expr = f"document_id == {_quote(document_id)}"
        if not ids:
            return self._delete(expr), ids
        kept = ", ".join(_quote(chunk_id) for chunk_id in ids)
        try:
            removed = self._delete(f"{expr} and chunk_id not in [{kept}]")
        except PersistenceError:
            self._discard(f"chunk_id in [{kept}]")
            raise
        return removed, ids

    def delete_document_chunks(self, document_id: str) -> int:
        return self._delete(f"document_id == {_quote(document_id)}")

    def query_nearest(
        self, vector: list[float], k: int, document_id: str | None = None
    ) -> list[RetrievalResult]:
        """Search the collection; Milvus COSINE similarity is mapped to distance."""
        validate_query_vector(vector, self.dimension)
        if k <= 0:
            return []
        search_params: dict[str, Any] = {"metric_type": "COSINE", "params": {"nprobe": self.config.nprobe}}
        if self.config.index_type.upper() == "HNSW":
            search_params = {"metric_type": "COSINE", "params": {"ef": self.config.hnsw_ef}}
        expr = f"document_id == {_quote(document_id)}" if document_id is not None else None
        try:
            self.collection.load()
            results = self.collection.search(
                data=[vector],
                anns_field="embedding",
                param=search_params,
                limit=k,
                expr=expr,
                output_fields=["chunk_id", "document_id", "chunk_text", "start_char", "end_char"],
            )
        except Exception as exc:
            raise PersistenceError(f"Milvus search failed: {type(exc).__name__}") from exc
        hits: list[RetrievalResult] = []
        for hit in results[0]:
            entity = hit.entity
            hits.append(
                RetrievalResult(
                    chunk_id=entity.get("chunk_id"),
                    document_id=entity.get("document_id"),
                    text=entity.get("chunk_text"),
                    start_char=int(entity.get("start_char")),
                    end_char=int(entity.get("end_char")),
                    distance=1.0 - float(hit.distance),
                )
            )
        hits.sort(key=lambda result: result.distance)
        return hits

    def stats(self) -> dict[str, int | str]:
        """Return collection stats."""
        try:
            count = int(self.collection.num_entities)
        except Exception:
            count = 0
        return {
            "backend": "milvus",
            "chunk_count": count,
            "embedding_dimension": self.dimension,
            "collection": self.config.collection,
        }

    def health(self) -> dict[str, str | bool]:
        """Return collection health info."""
        try:
            _ = self.collection.num_entities
        except Exception as exc:
            return {
                "backend": "milvus",
                "ok": False,
                "detail": type(exc).__name__,
            }
        return {
            "backend": "milvus",
            "ok": True,
            "collection": self.config.collection,
        }

    def _delete(self, expr: str) -> int:
        try:
            result = self.collection.delete(expr)
            self.collection.flush()
        except Exception as exc:
            raise PersistenceError(f"Milvus delete failed: {type(exc).__name__}") from exc
        try:
            return int(result.delete_count)
        except (AttributeError, TypeError, ValueError):
            return 0

    def _discard(self, expr: str) -> None:
        try:
            self.collection.delete(expr)
            self.collection.flush()
        except Exception as exc:
            logger.warning("milvus_rollback_failed", extra={"error": type(exc).__name__})


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
