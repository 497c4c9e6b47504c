from __future__ import annotations

import pytest

from semantic_hub.app.settings import Settings


def test_provider_order_is_fixed_at_construction(monkeypatch: pytest.MonkeyPatch) -> None:
    current = Settings(embedding_providers_raw="OpenAI, gemini", llm_providers_raw=" ollama ,,Gemini")
    monkeypatch.setenv("RAG_EMBEDDING_PROVIDERS", "ollama")
    monkeypatch.setenv("RAG_LLM_PROVIDERS", "openai")

    assert current.embedding_providers == ["openai", "gemini"]
    assert current.llm_providers == ["ollama", "gemini"]
