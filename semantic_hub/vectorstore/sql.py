from __future__ import annotations

"""SQL-backed chunk store with embeddings kept as JSON arrays."""

import json
from typing import Iterable

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from semantic_hub.metadata.store import build_engine
from semantic_hub.rag.guardrails import PersistenceError
from semantic_hub.rag.types import ChunkRecord, RetrievalResult
from semantic_hub.vectorstore.base import (
    cosine_distance,
    validate_query_vector,
    validate_record,
)


class SQLChunkStore:
    """Chunk store on any SQLAlchemy database.

    Distances are computed in Python over the candidate rows, so this backend
    suits small corpora; batch writes run in a single transaction.
    """
    def __init__(self, connection_uri: str, dimension: int) -> None:
        self.dimension = dimension
        self._engine = build_engine(connection_uri)
        self._metadata = MetaData()
        self._table = Table(
            "chunks",
            self._metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("document_id", String(64), nullable=False, index=True),
            Column("chunk_text", Text, nullable=False),
            Column("start_char", Integer, nullable=False),
            Column("end_char", Integer, nullable=False),
            Column("embedding", Text, nullable=False),
        )
        self._metadata.create_all(self._engine)

    def insert_chunk(self, record: ChunkRecord) -> str:
        return self.insert_chunks([record])[0]

    def insert_chunks(self, records: Iterable[ChunkRecord]) -> list[str]:
        """Insert a batch of chunks in one transaction."""
        batch = list(records)
        for record in batch:
            validate_record(record, self.dimension)
        try:
            with self._engine.begin() as conn:
                return self._insert(conn, batch)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Chunk insert failed: {type(exc).__name__}") from exc

    def replace_document_chunks(
        self, document_id: str, records: Iterable[ChunkRecord]
    ) -> tuple[int, list[str]]:
        """Delete and re-insert a document's chunks in one transaction."""
        batch = list(records)
        for record in batch:
            validate_record(record, self.dimension)
        try:
            with self._engine.begin() as conn:
                removed = conn.execute(
                    self._table.delete().where(self._table.c.document_id == document_id)
                ).rowcount
                ids = self._insert(conn, batch)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Chunk replace failed: {type(exc).__name__}") from exc
        return removed or 0, ids

    def delete_document_chunks(self, document_id: str) -> int:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    self._table.delete().where(self._table.c.document_id == document_id)
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Chunk delete failed: {type(exc).__name__}") from exc
        return result.rowcount or 0

    def query_nearest(
        self, vector: list[float], k: int, document_id: str | None = None
    ) -> list[RetrievalResult]:
        """Rank chunks by cosine distance; ties keep row order."""
        validate_query_vector(vector, self.dimension)
        if k <= 0:
            return []
        statement = self._table.select().order_by(self._table.c.id)
        if document_id is not None:
            statement = statement.where(self._table.c.document_id == document_id)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(statement).mappings().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Chunk query failed: {type(exc).__name__}") from exc
        results = [
            RetrievalResult(
                chunk_id=str(row["id"]),
                document_id=row["document_id"],
                text=row["chunk_text"],
                start_char=row["start_char"],
                end_char=row["end_char"],
                distance=cosine_distance(vector, json.loads(row["embedding"])),
            )
            for row in rows
        ]
        results.sort(key=lambda result: result.distance)
        return results[:k]

    def stats(self) -> dict[str, int | str]:
        try:
            with self._engine.connect() as conn:
                count = conn.execute(select(func.count()).select_from(self._table)).scalar_one()
        except SQLAlchemyError:
            count = 0
        return {
            "backend": "sql",
            "chunk_count": int(count),
            "embedding_dimension": self.dimension,
        }

    def health(self) -> dict[str, str | bool]:
        try:
            with self._engine.connect() as conn:
                conn.execute(select(func.count()).select_from(self._table))
        except SQLAlchemyError as exc:
            return {"backend": "sql", "ok": False, "detail": type(exc).__name__}
        return {"backend": "sql", "ok": True}

    def _insert(self, conn: Connection, batch: list[ChunkRecord]) -> list[str]:
        ids: list[str] = []
        for record in batch:
            result = conn.execute(
                self._table.insert().values(
                    document_id=record.document_id,
                    chunk_text=record.text,
                    start_char=record.start_char,
                    end_char=record.end_char,
                    embedding=json.dumps(record.embedding),
                )
            )
            ids.append(str(result.inserted_primary_key[0]))
        return ids
