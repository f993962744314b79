"""Plain-text extraction for stored documents."""
import logging
import os
from typing import List

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from .models import Document

logger = logging.getLogger(__name__)

GDOC_PLACEHOLDER = (
    "[Google Docs import is not supported. Paste the document text to tailor it.]"
)


def extract_text_from_txt(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        return f.read()


def extract_text_from_docx(path: str) -> str:
    """Paragraphs first, then table cells, one per line."""
    doc = DocxDocument(path)
    parts: List[str] = []
    for p in doc.paragraphs:
        txt = p.text.strip()
        if txt:
            parts.append(txt)
    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                txt = cell.text.strip()
                if txt:
                    parts.append(txt)
    return "\n".join(parts)


def extract_text_from_pdf(path: str) -> str:
    pages: List[str] = []
    with fitz.open(path) as pdf:
        for page in pdf:
            pages.append(page.get_text("text"))
    return "\n".join(pages).strip()


EXTRACTORS = {
    "txt": extract_text_from_txt,
    "docx": extract_text_from_docx,
    "pdf": extract_text_from_pdf,
}


def extract_file_text(path: str, file_type: str, file_name: str = "") -> str:
    """Extract text from a stored file.

    Unsupported types and parser failures produce a descriptive placeholder
    instead of raising. A missing file produces an empty string.
    """
    if not path or not os.path.exists(path):
        logger.warning(f"Stored file for {file_name or path!r} is missing")
        return ""

    extractor = EXTRACTORS.get((file_type or "").lower())
    if extractor is None:
        if file_type == "gdoc":
            return GDOC_PLACEHOLDER
        return f"[Text extraction is not supported for .{file_type} files ({file_name}).]"

    try:
        return extractor(path)
    except Exception as e:
        logger.error(f"Failed to extract text from {file_name or path}: {e}")
        return f"[Could not read text from {file_name or os.path.basename(path)}: {e}]"


def resolve_content(document: Document) -> str:
    """Pasted or previously extracted text wins over re-reading the stored file."""
    if document.original_content:
        return document.original_content
    return extract_file_text(document.original_file_path, document.file_type, document.file_name)
