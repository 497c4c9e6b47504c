from __future__ import annotations

"""FastAPI application entrypoint for the document Q&A service."""

import hashlib
import logging
import uuid

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from semantic_hub.app.dependencies import (
    get_chunk_store,
    get_document_store,
    get_embedding_chain,
    get_embedding_config_report,
    get_ingestion_pipeline,
    get_query_pipeline,
    get_synthesizer_chain,
)
from semantic_hub.app.metrics import (
    metrics_middleware,
    metrics_response,
    record_answer,
    record_ingested,
)
from semantic_hub.app.schemas import (
    DocumentResponse,
    DocumentSummary,
    EmbeddingHealthResponse,
    HighlightRange,
    IngestRequest,
    IngestResponse,
    QueryRequest,
    QueryResponse,
    SourceChunk,
    StatsHealthResponse,
    StatsResponse,
)
from semantic_hub.app.settings import settings
from semantic_hub.loaders.pdf import PDFLoaderError
from semantic_hub.loaders.uploads import UnsupportedFileError, extract_upload_text
from semantic_hub.rag.guardrails import (
    DocumentNotFoundError,
    InvalidInputError,
    PersistenceError,
)
from semantic_hub.rag.highlights import build_highlights
from semantic_hub.rag.types import Document

logger = logging.getLogger(__name__)

app = FastAPI(title="Semantic Hub", version="0.1.0")


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _safe_error_message(exc: Exception) -> str:
    """Return a safe error type name for logs and responses."""
    return type(exc).__name__


def _request_id(http_request: Request) -> str:
    return getattr(http_request.state, "request_id", str(uuid.uuid4()))


def _document_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        title=document.title,
        text=document.text,
        created_at=document.created_at,
    )


async def _read_upload_bytes(upload: UploadFile, max_bytes: int | None) -> bytes:
    """Stream upload bytes with a hard size limit."""
    if not max_bytes or max_bytes <= 0:
        return await upload.read()
    buffer = bytearray()
    while True:
        chunk = await upload.read(65536)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File exceeds maximum size of {max_bytes} bytes",
            )
    return bytes(buffer)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.get("/stats", response_model=StatsResponse)
async def stats() -> StatsResponse:
    """Return chunk store stats and the active provider chains."""
    return StatsResponse(
        **get_chunk_store().stats(),
        embedding_providers=get_embedding_chain().provider_names,
        llm_providers=get_synthesizer_chain().provider_names,
    )


@app.get("/stats/health", response_model=StatsHealthResponse)
async def stats_health() -> StatsHealthResponse:
    return StatsHealthResponse(**get_chunk_store().health())


@app.get("/stats/embedding", response_model=EmbeddingHealthResponse)
async def embedding_health() -> EmbeddingHealthResponse:
    """Report whether real embedding backends are configured."""
    report = get_embedding_config_report()
    return EmbeddingHealthResponse(**report.__dict__)


@app.post("/api/upload", response_model=DocumentResponse)
async def upload_document(
    http_request: Request,
    file: UploadFile | None = File(default=None),
) -> DocumentResponse:
    """Store an uploaded PDF, text or markdown file as a document."""
    request_id = _request_id(http_request)
    if file is None:
        raise HTTPException(status_code=400, detail="file required")
    filename = file.filename or f"doc-{uuid.uuid4().hex[:8]}"
    data = await _read_upload_bytes(file, settings.file_max_bytes)
    try:
        text = await run_in_threadpool(extract_upload_text, filename, data)
    except UnsupportedFileError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PDFLoaderError as exc:
        logger.warning(
            "upload_extract_failed",
            extra={"request_id": request_id, "upload_name": filename, "error": _safe_error_message(exc)},
        )
        raise HTTPException(status_code=400, detail="could not extract text from file") from exc
    try:
        document = await run_in_threadpool(get_document_store().create_document, filename, text)
    except PersistenceError as exc:
        logger.error(
            "upload_failed",
            extra={"request_id": request_id, "error": _safe_error_message(exc)},
        )
        raise HTTPException(status_code=500, detail="upload failed") from exc
    logger.info(
        "document_uploaded",
        extra={
            "request_id": request_id,
            "document_id": document.id,
            "bytes": len(data),
            "text_length": len(text),
        },
    )
    return _document_response(document)


@app.get("/api/documents", response_model=list[DocumentSummary])
async def list_documents() -> list[DocumentSummary]:
    try:
        documents = await run_in_threadpool(get_document_store().list_documents)
    except PersistenceError as exc:
        logger.error("document_list_failed", extra={"error": _safe_error_message(exc)})
        raise HTTPException(status_code=500, detail="listing failed") from exc
    return [
        DocumentSummary(
            id=document.id,
            title=document.title,
            created_at=document.created_at,
            length=len(document.text),
        )
        for document in documents
    ]


@app.get("/api/documents/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str) -> DocumentResponse:
    """Return a stored document with its full text for the viewer."""
    try:
        document = await run_in_threadpool(get_document_store().get_document, document_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail="document not found") from exc
    except PersistenceError as exc:
        logger.error("document_read_failed", extra={"error": _safe_error_message(exc)})
        raise HTTPException(status_code=500, detail="read failed") from exc
    return _document_response(document)


@app.post("/api/ingest", response_model=IngestResponse)
async def ingest(request: IngestRequest, http_request: Request) -> IngestResponse:
    """Chunk, embed and store a previously uploaded document."""
    request_id = _request_id(http_request)
    pipeline = get_ingestion_pipeline()
    try:
        result = await run_in_threadpool(pipeline.ingest, request.document_id)
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail="document not found") from exc
    except PersistenceError as exc:
        logger.error(
            "ingest_request_failed",
            extra={
                "request_id": request_id,
                "document_id": request.document_id,
                "error": _safe_error_message(exc),
            },
        )
        raise HTTPException(status_code=500, detail="ingest failed") from exc
    record_ingested(result.ingested)
    logger.info(
        "ingest_request_completed",
        extra={
            "request_id": request_id,
            "document_id": result.document_id,
            "ingested": result.ingested,
            "replaced": result.replaced,
        },
    )
    return IngestResponse(document_id=result.document_id, ingested=result.ingested)


@app.post("/api/query", response_model=QueryResponse)
async def query(request: QueryRequest, http_request: Request) -> QueryResponse:
    """Answer a question from the nearest stored chunks."""
    request_id = _request_id(http_request)
    question = request.question or ""
    logger.info(
        "query_received",
        extra={
            "request_id": request_id,
            "document_id": request.document_id,
            "query_length": len(question),
            "query_hash": hashlib.sha256(question.encode("utf-8")).hexdigest(),
            "top_k": request.top_k,
        },
    )
    pipeline = get_query_pipeline()
    try:
        result = await pipeline.answer(
            request.question,
            document_id=request.document_id,
            top_k=request.top_k,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PersistenceError as exc:
        logger.error(
            "query_failed",
            extra={"request_id": request_id, "error": _safe_error_message(exc)},
        )
        raise HTTPException(status_code=500, detail="query failed") from exc
    record_answer(result.mode)
    highlights = build_highlights(result.sources) if request.document_id else []
    logger.info(
        "query_completed",
        extra={
            "request_id": request_id,
            "mode": result.mode,
            "answer_length": len(result.answer),
            "sources": len(result.sources),
        },
    )
    return QueryResponse(
        answer=result.answer,
        sources=[
            SourceChunk(
                chunk_id=source.chunk_id,
                document_id=source.document_id,
                snippet_index=source.snippet_index,
                start_char=source.start_char,
                end_char=source.end_char,
                score=source.score,
            )
            for source in result.sources
        ],
        highlights=[
            HighlightRange(
                start_char=item.start_char,
                end_char=item.end_char,
                snippet_indices=item.snippet_indices,
            )
            for item in highlights
        ],
        mode=result.mode,
        request_id=request_id,
    )
