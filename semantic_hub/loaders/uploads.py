from __future__ import annotations

"""Map an uploaded file to its extracted text by file suffix."""

from pathlib import Path

from semantic_hub.loaders.pdf import load_pdf_bytes
from semantic_hub.loaders.text import load_text_bytes

SUPPORTED_SUFFIXES = (".pdf", ".txt", ".text", ".md", ".markdown")


class UnsupportedFileError(ValueError):
    """Raised for uploads whose suffix has no loader."""
    pass


def extract_upload_text(filename: str, data: bytes) -> str:
    suffix = Path(filename).suffix.lower()
    if suffix == ".pdf":
        return load_pdf_bytes(data)
    if suffix in SUPPORTED_SUFFIXES:
        return load_text_bytes(data)
    raise UnsupportedFileError(f"Unsupported file type: {suffix or filename}")
