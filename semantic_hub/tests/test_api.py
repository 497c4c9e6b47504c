from __future__ import annotations

import httpx
import pytest

from semantic_hub.app.dependencies import reset_pipeline_cache
from semantic_hub.app.main import app

pytestmark = pytest.mark.anyio

LONG_TEXT = ("Quarterly revenue grew in the north region. " * 40)[:1600]


def get_client() -> httpx.AsyncClient:
    reset_pipeline_cache()
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


async def _upload(client: httpx.AsyncClient, name: str, data: bytes) -> httpx.Response:
    return await client.post("/api/upload", files={"file": (name, data, "text/plain")})


async def test_health_endpoint() -> None:
    async with get_client() as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


async def test_request_id_is_echoed() -> None:
    async with get_client() as client:
        response = await client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


async def test_upload_ingest_and_query() -> None:
    async with get_client() as client:
        upload = await _upload(client, "report.txt", LONG_TEXT.encode("utf-8"))
        assert upload.status_code == 200
        document = upload.json()
        assert document["title"] == "report.txt"
        assert document["text"] == LONG_TEXT

        ingest = await client.post("/api/ingest", json={"document_id": document["id"]})
        assert ingest.status_code == 200
        assert ingest.json() == {"status": "ok", "document_id": document["id"], "ingested": 2}

        query = await client.post(
            "/api/query",
            json={"document_id": document["id"], "question": "How did revenue change?"},
            headers={"X-Request-ID": "query-1"},
        )
    assert query.status_code == 200
    payload = query.json()
    assert payload["mode"] == "extractive"
    assert "SOURCES" in payload["answer"]
    assert payload["request_id"] == "query-1"
    assert len(payload["sources"]) == 2
    assert sorted(source["snippet_index"] for source in payload["sources"]) == [1, 2]
    assert {source["document_id"] for source in payload["sources"]} == {document["id"]}
    assert payload["highlights"] == [{"start_char": 0, "end_char": 1600, "snippet_indices": [1, 2]}]


async def test_reingest_replaces_chunks() -> None:
    async with get_client() as client:
        document = (await _upload(client, "report.txt", LONG_TEXT.encode("utf-8"))).json()
        await client.post("/api/ingest", json={"document_id": document["id"]})
        await client.post("/api/ingest", json={"document_id": document["id"]})
        stats = await client.get("/stats")
    assert stats.status_code == 200
    assert stats.json()["chunk_count"] == 2


async def test_documents_listing_and_lookup() -> None:
    async with get_client() as client:
        document = (await _upload(client, "notes.md", b"# Notes\nShip on Friday.")).json()
        listing = await client.get("/api/documents")
        found = await client.get(f"/api/documents/{document['id']}")
        missing = await client.get("/api/documents/unknown")
    assert listing.status_code == 200
    assert listing.json()[0]["id"] == document["id"]
    assert listing.json()[0]["length"] == len("# Notes\nShip on Friday.")
    assert found.json()["text"] == "# Notes\nShip on Friday."
    assert missing.status_code == 404


async def test_upload_rejects_missing_unsupported_and_oversized_files() -> None:
    async with get_client() as client:
        missing = await client.post(
            "/api/upload", files={"attachment": ("a.txt", b"hello", "text/plain")}
        )
        unsupported = await _upload(client, "slides.pptx", b"binary")
        oversized = await _upload(client, "big.txt", b"x" * 5000)
        broken_pdf = await client.post(
            "/api/upload", files={"file": ("broken.pdf", b"not a pdf", "application/pdf")}
        )
    assert missing.status_code == 400
    assert unsupported.status_code == 400
    assert oversized.status_code == 400
    assert broken_pdf.status_code == 400


async def test_ingest_errors_map_to_status_codes() -> None:
    async with get_client() as client:
        blank = await client.post("/api/ingest", json={"document_id": " "})
        absent = await client.post("/api/ingest", json={})
        unknown = await client.post("/api/ingest", json={"document_id": "nope"})
        empty_doc = (await _upload(client, "empty.txt", b"")).json()
        empty = await client.post("/api/ingest", json={"document_id": empty_doc["id"]})
    assert blank.status_code == 400
    assert absent.status_code == 400
    assert unknown.status_code == 404
    assert empty.status_code == 400


async def test_query_requires_question() -> None:
    async with get_client() as client:
        missing = await client.post("/api/query", json={})
        blank = await client.post("/api/query", json={"question": "   "})
    assert missing.status_code == 400
    assert blank.status_code == 400


async def test_query_without_document_has_no_highlights() -> None:
    async with get_client() as client:
        document = (await _upload(client, "report.txt", b"Revenue grew.")).json()
        await client.post("/api/ingest", json={"document_id": document["id"]})
        response = await client.post("/api/query", json={"question": "Revenue?", "top_k": 1})
    payload = response.json()
    assert response.status_code == 200
    assert len(payload["sources"]) == 1
    assert payload["highlights"] == []


async def test_stats_reports_offline_chains() -> None:
    async with get_client() as client:
        response = await client.get("/stats")
        embedding = await client.get("/stats/embedding")
        health = await client.get("/stats/health")
    data = response.json()
    assert data["backend"] == "memory"
    assert data["chunk_count"] == 0
    assert data["embedding_dimension"] == 64
    assert data["embedding_providers"] == []
    assert data["llm_providers"] == []
    assert embedding.json()["status"] == "degraded"
    assert health.json()["ok"] is True


async def test_metrics_endpoint_counts_answers() -> None:
    async with get_client() as client:
        document = (await _upload(client, "report.txt", b"Revenue grew.")).json()
        await client.post("/api/ingest", json={"document_id": document["id"]})
        await client.post("/api/query", json={"question": "Revenue?"})
        response = await client.get("/metrics")
    assert response.status_code == 200
    assert 'semantic_hub_answers_total{mode="extractive"}' in response.text
    assert "semantic_hub_chunks_ingested_total" in response.text


async def test_metrics_label_unmatched_paths_with_fixed_value() -> None:
    async with get_client() as client:
        missing = await client.get("/wp-admin/setup-config.php")
        response = await client.get("/metrics")
    assert missing.status_code == 404
    assert 'path="unmatched"' in response.text
    assert "/wp-admin/setup-config.php" not in response.text
