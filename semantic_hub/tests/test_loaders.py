from __future__ import annotations

import fitz
import pytest

from semantic_hub.loaders.pdf import PDFLoaderError, _clean_pdf_text, load_pdf_bytes
from semantic_hub.loaders.text import load_text_bytes
from semantic_hub.loaders.uploads import UnsupportedFileError, extract_upload_text


def _pdf_bytes(*pages: str) -> bytes:
    document = fitz.open()
    for text in pages:
        page = document.new_page()
        page.insert_text((72, 72), text)
    data = document.tobytes()
    document.close()
    return data


def test_pdf_pages_are_extracted_in_order() -> None:
    text = load_pdf_bytes(_pdf_bytes("First page text", "Second page text"))

    assert "First page text" in text
    assert "Second page text" in text
    assert text.index("First") < text.index("Second")


def test_invalid_pdf_raises_loader_error() -> None:
    with pytest.raises(PDFLoaderError):
        load_pdf_bytes(b"definitely not a pdf")


def test_pdf_cleanup_joins_hyphenated_breaks() -> None:
    raw = "inter-\nnational trade  \r\n\n\n\nnext section"

    assert _clean_pdf_text(raw) == "international trade\n\nnext section"


def test_text_decoding_strips_bom_and_crlf() -> None:
    data = "\ufeffline one\r\nline two".encode("utf-8")

    assert load_text_bytes(data) == "line one\nline two"


def test_upload_dispatch_by_suffix() -> None:
    assert extract_upload_text("notes.MD", b"# Title") == "# Title"
    assert "Hello" in extract_upload_text("report.pdf", _pdf_bytes("Hello"))
    with pytest.raises(UnsupportedFileError):
        extract_upload_text("sheet.xlsx", b"data")
