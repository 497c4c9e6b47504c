from __future__ import annotations

"""Plain text and markdown upload decoding."""


def load_text_bytes(data: bytes) -> str:
    """Decode UTF-8 text, dropping a BOM and normalizing line endings."""
    content = data.decode("utf-8-sig", errors="replace")
    return content.replace("\r\n", "\n")
