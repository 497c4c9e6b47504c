from __future__ import annotations

"""Extractive answer used when no synthesizer produced text."""

from dataclasses import dataclass

from semantic_hub.rag.types import RetrievalResult

NO_SUPPORT = "No supporting text."


@dataclass
class ExtractiveAnswerer:
    """Quote a fixed-length prefix of the top-ranked chunk."""
    max_chars: int = 250

    def generate(self, results: list[RetrievalResult]) -> str:
        """Build the fallback answer, citing snippet 1 when there is one."""
        if not results:
            return f"{NO_SUPPORT}\n\nSOURCES: none"
        preview = results[0].text[: self.max_chars]
        return f'Based on the provided context: "{preview}"\n\nSOURCES: snippet 1'
