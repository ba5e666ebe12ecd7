from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import fitz  # PyMuPDF

from models.documents import PageText


class PDFExtractionError(Exception):
    """Base class for PDF extraction errors."""

    def __init__(self, message: str, document_id: Optional[str] = None):
        if document_id:
            message = f"[document_id={document_id}] {message}"
        super().__init__(message)


class CorruptedPDFError(PDFExtractionError):
    """Raised when PDF bytes are corrupted, unreadable, or encrypted."""


class EmptyPDFError(PDFExtractionError):
    """Raised when the PDF contains zero pages or no extractable text."""


@dataclass
class ExtractedText:
    text: str
    pages: int
    page_texts: List[PageText] = field(default_factory=list)
    info: Dict[str, Optional[str]] = field(default_factory=dict)


def extract_text_from_pdf_bytes(
    data: bytes, document_id: Optional[str] = None
) -> ExtractedText:
    """Extract per-page text and basic metadata from PDF bytes using PyMuPDF."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise CorruptedPDFError(f"Failed to open PDF: {e}", document_id) from e

    try:
        if doc.needs_pass:
            raise CorruptedPDFError("PDF is encrypted", document_id)
        if doc.page_count == 0:
            raise EmptyPDFError("Empty PDF: 0 pages found", document_id)

        page_texts = []
        for i in range(doc.page_count):
            # "text" mode is instant (no layout analysis)
            text = doc.load_page(i).get_text("text").strip()
            if text:
                page_texts.append(PageText(text=text, page_number=i + 1))

        metadata = doc.metadata or {}
        info = {
            "title": metadata.get("title") or None,
            "author": metadata.get("author") or None,
            "subject": metadata.get("subject") or None,
        }
        pages = doc.page_count
    except PDFExtractionError:
        raise
    except Exception as e:
        raise PDFExtractionError(f"PDF extraction failed: {e}", document_id) from e
    finally:
        doc.close()

    text = "\n\n".join(page.text for page in page_texts).strip()
    if not text:
        raise EmptyPDFError("No text could be extracted from the PDF", document_id)

    return ExtractedText(text=text, pages=pages, page_texts=page_texts, info=info)


def clean_pdf_text(text: str) -> str:
    """Remove excessive whitespace and formatting artifacts from extracted text."""
    text = re.sub(r" +", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def truncate_text(text: str, max_chars: int = 15000) -> str:
    """Limit text to `max_chars`, preferring to cut at a sentence or line boundary.

    A boundary is only used when it falls in the last 10% of the window;
    otherwise the text is cut hard and marked with an ellipsis.
    """
    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    cutoff = max(truncated.rfind("."), truncated.rfind("\n"))

    if cutoff > max_chars * 0.9:
        return truncated[: cutoff + 1]

    return truncated + "..."


__all__ = [
    "ExtractedText",
    "extract_text_from_pdf_bytes",
    "clean_pdf_text",
    "truncate_text",
    "PDFExtractionError",
    "CorruptedPDFError",
    "EmptyPDFError",
]
