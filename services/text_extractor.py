"""
Best-effort plain-text extraction for CV blobs.

This is a heuristic, not a document parser: PDF, DOCX and legacy Word
containers are reduced to whatever printable characters survive, with no
awareness of layout, tables or embedded objects.
"""

import re

PDF_MARKER = b"%PDF"
ZIP_MAGIC = b"PK"
OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

MIN_READABLE_LENGTH = 100

_NON_PRINTABLE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\xFF\ufffd]")
_WHITESPACE = re.compile(r"\s+")


def is_binary_container(data: bytes) -> bool:
    return PDF_MARKER in data[:1024] or data.startswith(ZIP_MAGIC) or data.startswith(OLE_MAGIC)


def unreadable_placeholder(file_name: str) -> str:
    return (
        f"[Document: {file_name}] - Unable to extract full text. "
        "The CV contains binary data that requires specialized parsing."
    )


def extract_text(data: bytes, file_name: str) -> str:
    text = data.decode("utf-8-sig", errors="replace")
    if not is_binary_container(data):
        return text

    readable = _WHITESPACE.sub(" ", _NON_PRINTABLE.sub(" ", text)).strip()
    if len(readable) > MIN_READABLE_LENGTH:
        return readable
    return unreadable_placeholder(file_name)
