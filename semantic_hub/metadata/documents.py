from __future__ import annotations

"""Document persistence: uploaded titles and extracted text."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, MetaData, String, Table, Text
from sqlalchemy.exc import SQLAlchemyError

from semantic_hub.metadata.store import build_engine
from semantic_hub.rag.guardrails import DocumentNotFoundError, PersistenceError
from semantic_hub.rag.types import Document


class DocumentStore:
    """Store documents in a SQL database; text is immutable once created."""
    def __init__(self, connection_uri: str) -> None:
        self._engine = build_engine(connection_uri)
        self._metadata = MetaData()
        self._table = Table(
            "documents",
            self._metadata,
            Column("id", String(36), primary_key=True),
            Column("title", String(255), nullable=False),
            Column("text", Text, nullable=False),
            Column("created_at", DateTime(timezone=True), nullable=False),
        )
        self._metadata.create_all(self._engine)

    def create_document(self, title: str, text: str) -> Document:
        """Insert a document and return it with its generated ID."""
        document = Document(
            id=str(uuid.uuid4()),
            title=title[:255],
            text=text,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    self._table.insert().values(
                        id=document.id,
                        title=document.title,
                        text=document.text,
                        created_at=document.created_at,
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Document insert failed: {type(exc).__name__}") from exc
        return document

    def get_document(self, document_id: str) -> Document:
        """Load a document or raise DocumentNotFoundError."""
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    self._table.select().where(self._table.c.id == document_id)
                ).mappings().first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Document read failed: {type(exc).__name__}") from exc
        if row is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")
        return Document(
            id=row["id"],
            title=row["title"],
            text=row["text"],
            created_at=row["created_at"],
        )

    def get_document_text(self, document_id: str) -> str:
        return self.get_document(document_id).text

    def list_documents(self) -> list[Document]:
        """Return all documents, oldest first."""
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    self._table.select().order_by(self._table.c.created_at)
                ).mappings().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Document listing failed: {type(exc).__name__}") from exc
        return [
            Document(
                id=row["id"],
                title=row["title"],
                text=row["text"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
