from __future__ import annotations

"""PDF text extraction and cleanup."""

import re


class PDFLoaderError(RuntimeError):
    """Raised when PDF loading fails."""
    pass


_HYPHEN_BREAK_RE = re.compile(r"(\w)-\n(\w)")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def _clean_pdf_text(text: str) -> str:
    """Rejoin hyphenated line breaks and squeeze blank runs; keep line structure."""
    if not text:
        return ""
    cleaned = text.replace("\r\n", "\n").replace("\x00", "")
    cleaned = _HYPHEN_BREAK_RE.sub(r"\1\2", cleaned)
    cleaned = _TRAILING_SPACE_RE.sub("\n", cleaned)
    cleaned = _BLANK_RUN_RE.sub("\n\n", cleaned)
    return cleaned.strip()


def load_pdf_bytes(data: bytes) -> str:
    """Extract the text of every page from PDF bytes."""
    try:
        import fitz
    except ImportError as exc:
        raise PDFLoaderError("PyMuPDF is required to load PDF files") from exc

    try:
        reader = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise PDFLoaderError(f"Could not open PDF: {type(exc).__name__}") from exc
    with reader:
        text_parts = [page.get_text() or "" for page in reader]
    return _clean_pdf_text("\n".join(text_parts))
