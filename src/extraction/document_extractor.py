# src/extraction/document_extractor.py — v1
"""Uploaded document → plain text for the ``file_text`` source.

PDF text comes from PyMuPDF (fitz), DOCX text from python-docx. Only
``.pdf`` and ``.docx`` are accepted, each with its own size ceiling.
Runs of three or more whitespace characters collapse to a paragraph break.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from enum import Enum

from actionextractor.core.errors import (
    DocumentTooLargeError,
    SourceUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MAX_PDF_BYTES = 10 * 1024 * 1024
MAX_DOCX_BYTES = 5 * 1024 * 1024

MSG_UNSUPPORTED = "Unsupported format. Only .pdf and .docx files are accepted."
MSG_UNREADABLE = (
    "Could not read the file content. "
    "Check that it is not password-protected or damaged."
)
MSG_NO_TEXT = "The file contains no readable text."

_WHITESPACE_RUN = re.compile(r"\s{3,}")


class DocumentType(str, Enum):
    PDF = "pdf"
    DOCX = "docx"


@dataclass(frozen=True)
class ExtractedDocument:
    text: str
    title: str
    document_type: DocumentType

    @property
    def char_count(self) -> int:
        return len(self.text)


def detect_document_type(filename: str) -> DocumentType:
    """Document type from the file extension (case-insensitive).

    Raises:
        ValidationError: For anything but ``.pdf`` and ``.docx``.
    """
    lower = filename.strip().lower()
    if lower.endswith(".pdf"):
        return DocumentType.PDF
    if lower.endswith(".docx"):
        return DocumentType.DOCX
    raise ValidationError(MSG_UNSUPPORTED)


def check_document_size(
    document_type: DocumentType,
    size: int,
    max_pdf_bytes: int = MAX_PDF_BYTES,
    max_docx_bytes: int = MAX_DOCX_BYTES,
) -> None:
    """Raises DocumentTooLargeError when ``size`` exceeds the type's ceiling."""
    limit = max_pdf_bytes if document_type == DocumentType.PDF else max_docx_bytes
    if size > limit:
        limit_mb = limit / (1024 * 1024)
        raise DocumentTooLargeError(
            f"The file exceeds the {limit_mb:g} MB limit for "
            f"{document_type.value.upper()} files."
        )


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RUN.sub("\n\n", text).strip()


def pdf_to_text(data: bytes) -> tuple[str, str | None]:
    """Page text of a PDF and its metadata title, if any."""
    import fitz  # PyMuPDF

    doc = fitz.open(stream=data, filetype="pdf")
    try:
        parts = [page.get_text("text") for page in doc]
        title = (doc.metadata or {}).get("title") or None
    finally:
        doc.close()
    return "\n".join(parts), title


def docx_to_text(data: bytes) -> str:
    """Paragraph text of a Word document, then its table rows."""
    import docx

    document = docx.Document(io.BytesIO(data))
    parts = [para.text for para in document.paragraphs if para.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n\n".join(parts)


def extract_document(
    filename: str,
    data: bytes,
    max_pdf_bytes: int = MAX_PDF_BYTES,
    max_docx_bytes: int = MAX_DOCX_BYTES,
) -> ExtractedDocument:
    """Validate an uploaded document and return its text.

    Args:
        filename: Original file name; only its extension is used.
        data: Raw file content.

    Raises:
        ValidationError: Unsupported extension.
        DocumentTooLargeError: Over the size ceiling for its type.
        SourceUnavailableError: Unreadable file or no text in it.
    """
    document_type = detect_document_type(filename)
    check_document_size(document_type, len(data), max_pdf_bytes, max_docx_bytes)

    title: str | None = None
    try:
        if document_type == DocumentType.PDF:
            raw, title = pdf_to_text(data)
        else:
            raw = docx_to_text(data)
    except Exception as e:
        logger.warning("Could not read %s (%s): %s", filename, document_type.value, e)
        raise SourceUnavailableError(MSG_UNREADABLE, reason="fetch-failed") from e

    text = collapse_whitespace(raw)
    if not text:
        raise SourceUnavailableError(MSG_NO_TEXT, reason="no-content")

    logger.info("Extracted %d chars from %s", len(text), filename)
    return ExtractedDocument(
        text=text,
        title=(title or "").strip() or filename,
        document_type=document_type,
    )
