from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Empty values keep a local .env from enabling real providers.
for _name in ("OPENAI_API_KEY", "GEMINI_API_KEY", "OLLAMA_BASE_URL", "RAG_METADATA_DB_URI"):
    os.environ[_name] = ""
os.environ["RAG_VECTORSTORE"] = "memory"
os.environ["RAG_DATABASE_URI"] = "sqlite://"
os.environ["EMBEDDING_DIMENSION"] = "64"
os.environ["RAG_CHUNK_SIZE"] = "800"
os.environ["RAG_TOP_K"] = "5"
os.environ["RAG_REINGEST_MODE"] = "replace"
os.environ["RAG_FILE_MAX_BYTES"] = "4096"
os.environ.setdefault("RAG_METRICS_ENABLED", "true")

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # The application code is asyncio-based; run anyio-marked tests on asyncio only.
    return "asyncio"
