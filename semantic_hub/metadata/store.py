from __future__ import annotations

"""SQL engine setup and the ingestion run log."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from semantic_hub.rag.guardrails import PersistenceError

_MEMORY_URIS = {"sqlite://", "sqlite:///:memory:"}


def build_engine(connection_uri: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if connection_uri in _MEMORY_URIS:
        return create_engine(
            connection_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if connection_uri.startswith("sqlite"):
        return create_engine(connection_uri, connect_args={"check_same_thread": False})
    return create_engine(connection_uri)


class IngestionRunStore:
    """Record the lifecycle of every ingestion run in a SQL database."""
    def __init__(self, connection_uri: str) -> None:
        """Initialize the run log and ensure its table exists."""
        self._engine = build_engine(connection_uri)
        self._metadata = MetaData()
        self._table = Table(
            "ingestion_runs",
            self._metadata,
            Column("id", String(36), primary_key=True),
            Column("document_id", String(64), nullable=False, index=True),
            Column("mode", String(16), nullable=False),
            Column("status", String(32), nullable=False),
            Column("ingested_count", Integer, nullable=True),
            Column("chunk_count", Integer, nullable=True),
            Column("error", Text, nullable=True),
            Column("created_at", DateTime(timezone=True), nullable=False),
            Column("completed_at", DateTime(timezone=True), nullable=True),
        )
        self._metadata.create_all(self._engine)

    def record_start(self, document_id: str, mode: str) -> str:
        """Create a run record and return its ID."""
        run_id = str(uuid.uuid4())
        payload = {
            "id": run_id,
            "document_id": document_id,
            "mode": mode,
            "status": "started",
            "created_at": datetime.now(timezone.utc),
        }
        self._execute(self._table.insert().values(**payload))
        return run_id

    def record_complete(self, run_id: str, ingested: int, chunk_count: int) -> None:
        """Mark a run as completed with counts."""
        self._execute(
            self._table.update()
            .where(self._table.c.id == run_id)
            .values(
                status="completed",
                ingested_count=ingested,
                chunk_count=chunk_count,
                completed_at=datetime.now(timezone.utc),
            )
        )

    def record_failure(self, run_id: str, error: str) -> None:
        """Mark a run as failed with an error label."""
        self._execute(
            self._table.update()
            .where(self._table.c.id == run_id)
            .values(status="failed", error=error, completed_at=datetime.now(timezone.utc))
        )

    def get_run(self, run_id: str) -> dict[str, object] | None:
        with self._engine.connect() as conn:
            row = conn.execute(
                self._table.select().where(self._table.c.id == run_id)
            ).mappings().first()
        return dict(row) if row else None

    def _execute(self, statement) -> None:
        try:
            with self._engine.begin() as conn:
                conn.execute(statement)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Ingestion run log write failed: {type(exc).__name__}") from exc
