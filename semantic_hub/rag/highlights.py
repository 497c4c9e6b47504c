from __future__ import annotations

"""Viewer highlight ranges built from source offsets."""

from dataclasses import dataclass, field

from semantic_hub.rag.types import Source


@dataclass
class HighlightRange:
    """Merged character range with the snippets that cover it."""
    start_char: int
    end_char: int
    snippet_indices: list[int] = field(default_factory=list)


def build_highlights(sources: list[Source]) -> list[HighlightRange]:
    """Merge overlapping or touching source ranges, ordered by start offset.

    Only meaningful for sources from a single document; callers scoping a
    query to one document get ranges they can paint directly on its text.
    """
    spans = sorted(
        (source for source in sources if source.end_char > source.start_char),
        key=lambda source: (source.start_char, source.end_char),
    )
    merged: list[HighlightRange] = []
    for source in spans:
        last = merged[-1] if merged else None
        if last is None or source.start_char > last.end_char:
            merged.append(
                HighlightRange(
                    start_char=source.start_char,
                    end_char=source.end_char,
                    snippet_indices=[source.snippet_index],
                )
            )
            continue
        last.end_char = max(last.end_char, source.end_char)
        if source.snippet_index not in last.snippet_indices:
            last.snippet_indices.append(source.snippet_index)
    for item in merged:
        item.snippet_indices.sort()
    return merged
