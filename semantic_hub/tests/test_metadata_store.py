from __future__ import annotations

import sqlite3

import pytest

from semantic_hub.metadata.documents import DocumentStore
from semantic_hub.metadata.store import IngestionRunStore
from semantic_hub.rag.guardrails import DocumentNotFoundError


def test_run_store_records_lifecycle(tmp_path) -> None:
    db_path = tmp_path / "meta.db"
    store = IngestionRunStore(f"sqlite:///{db_path}")
    run_id = store.record_start("doc-1", "replace")
    store.record_complete(run_id, ingested=5, chunk_count=5)

    conn = sqlite3.connect(db_path)
    try:
        row = conn.execute(
            "SELECT status, mode, ingested_count, chunk_count FROM ingestion_runs WHERE id = ?",
            (run_id,),
        ).fetchone()
    finally:
        conn.close()
    assert row == ("completed", "replace", 5, 5)


def test_run_store_records_failure() -> None:
    store = IngestionRunStore("sqlite://")
    run_id = store.record_start("doc-1", "append")
    store.record_failure(run_id, "PersistenceError")

    run = store.get_run(run_id)

    assert run is not None
    assert run["status"] == "failed"
    assert run["error"] == "PersistenceError"
    assert run["completed_at"] is not None


def test_document_store_round_trip() -> None:
    store = DocumentStore("sqlite://")
    created = store.create_document("report.pdf", "Q4 sales were 100 units.")

    loaded = store.get_document(created.id)

    assert loaded.title == "report.pdf"
    assert loaded.text == "Q4 sales were 100 units."
    assert store.get_document_text(created.id) == "Q4 sales were 100 units."
    assert [document.id for document in store.list_documents()] == [created.id]


def test_document_store_missing_id() -> None:
    store = DocumentStore("sqlite://")

    with pytest.raises(DocumentNotFoundError):
        store.get_document_text("does-not-exist")
