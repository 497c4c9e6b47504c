from __future__ import annotations

"""Context assembly and source attribution for retrieved chunks."""

from semantic_hub.rag.types import RetrievalResult, Source

SNIPPET_DELIMITER = "\n\n---\n\n"

SYSTEM_PROMPT = (
    "You are a helpful assistant. "
    "Use the provided CONTEXT to answer the question. "
    "Answer only from the context and always cite snippets."
)


def snippet_label(index: int) -> str:
    """Return the 1-based label used for a snippet in the context block."""
    return f"SNIPPET {index}"


def build_context_block(results: list[RetrievalResult]) -> str:
    """Concatenate retrieved chunk texts, labelled in retrieval order."""
    return SNIPPET_DELIMITER.join(
        f"{snippet_label(idx)}:\n{result.text}" for idx, result in enumerate(results, start=1)
    )


def build_user_prompt(question: str, context_block: str) -> str:
    """Fill the fixed instruction template with context and question."""
    return (
        f"CONTEXT:\n{context_block}\n\n"
        f"QUESTION: {question}\n\n"
        "Answer concisely using only the context above and include a 'SOURCES' line "
        "naming the snippets you used."
    )


def build_sources(results: list[RetrievalResult]) -> list[Source]:
    """Build one source per retrieved chunk, numbered like the context block."""
    return [
        Source(
            chunk_id=result.chunk_id,
            document_id=result.document_id,
            snippet_index=idx,
            start_char=result.start_char,
            end_char=result.end_char,
            score=result.score,
        )
        for idx, result in enumerate(results, start=1)
    ]
