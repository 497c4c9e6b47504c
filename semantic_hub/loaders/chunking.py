from __future__ import annotations

"""Fixed-width character chunking."""

from semantic_hub.rag.types import ChunkSpan


def chunk_text(text: str, size: int) -> list[ChunkSpan]:
    """Split text into consecutive, non-overlapping windows of ``size`` characters.

    The last window holds whatever remains. Text is not normalized, so every
    span's offsets index the original string exactly.
    """
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise ValueError(f"Chunk size must be a positive integer, got {size!r}")
    if not text:
        return []
    length = len(text)
    chunks: list[ChunkSpan] = []
    for start in range(0, length, size):
        end = min(start + size, length)
        chunks.append(ChunkSpan(text=text[start:end], start=start, end=end))
    return chunks
