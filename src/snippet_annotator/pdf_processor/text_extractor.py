"""
PDF Text Extraction - per-page plain text and page sizes via PyMuPDF.

Produces the PageText values the matcher works on, plus helpers to format
document text as prompt context for an annotation-proposal model.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF

from ..models import PageText

logger = logging.getLogger(__name__)


@dataclass
class ExtractedDocument:
    pages: List[PageText]
    page_sizes: Dict[int, Tuple[float, float]] = field(default_factory=dict)
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return len(self.pages)


def _page_text(page: fitz.Page) -> str:
    return page.get_text("text").strip()


def _metadata(doc: fitz.Document) -> Dict[str, str]:
    return {key: value for key, value in (doc.metadata or {}).items() if value}


def extract_document(doc: fitz.Document) -> ExtractedDocument:
    """
    Extract text and page sizes from every page of an open document.

    Args:
        doc: Open PyMuPDF document

    Returns:
        ExtractedDocument with pages numbered from 1
    """
    pages: List[PageText] = []
    page_sizes: Dict[int, Tuple[float, float]] = {}

    for index, page in enumerate(doc):
        page_number = index + 1
        text = _page_text(page)
        pages.append(PageText(page_number=page_number, raw_text=text))
        page_sizes[page_number] = (page.rect.width, page.rect.height)
        logger.debug(f"Extracted page {page_number}: {len(text)} chars")

    logger.info(f"Extracted text from {len(pages)} pages")
    return ExtractedDocument(pages=pages, page_sizes=page_sizes, metadata=_metadata(doc))


def extract_pdf_file(pdf_path: str, page_number: Optional[int] = None) -> ExtractedDocument:
    """
    Open `pdf_path`, extract it and close it again.

    Args:
        pdf_path: Path to the PDF file
        page_number: Only extract this 1-based page

    Raises:
        ValueError: if page_number is outside the document
    """
    doc = fitz.open(str(pdf_path))
    try:
        if page_number is None:
            return extract_document(doc)

        page = extract_page(doc, page_number)
        rect = doc[page_number - 1].rect
        return ExtractedDocument(
            pages=[page],
            page_sizes={page_number: (rect.width, rect.height)},
            metadata=_metadata(doc),
        )
    finally:
        doc.close()


def extract_page(doc: fitz.Document, page_number: int) -> PageText:
    """
    Extract the text of a single 1-based page.

    Raises:
        ValueError: if the page number is outside the document
    """
    if page_number < 1 or page_number > len(doc):
        raise ValueError(f"Invalid page number: {page_number}. PDF has {len(doc)} pages.")
    return PageText(page_number=page_number, raw_text=_page_text(doc[page_number - 1]))


def format_for_prompt(document: ExtractedDocument,
                      max_chars_per_page: Optional[int] = None,
                      include_metadata: bool = True,
                      page_delimiter: str = "\n\n---\n\n") -> str:
    """
    Format extracted text with clear page demarcations, e.g. as context for a
    model that proposes annotations.
    """
    parts = []

    if include_metadata and document.metadata:
        meta = ["Document Metadata:"]
        for key in ("title", "author", "subject"):
            if document.metadata.get(key):
                meta.append(f"{key.capitalize()}: {document.metadata[key]}")
        meta.append(f"Total Pages: {document.total_pages}")
        parts.append("\n".join(meta))

    for page in document.pages:
        text = page.raw_text
        if max_chars_per_page is not None and len(text) > max_chars_per_page:
            text = text[:max_chars_per_page] + "..."
        parts.append(f"[Page {page.page_number}]\n{text}")

    return page_delimiter.join(parts).strip()


def find_text_in_pages(pages: List[PageText], search_text: str,
                       case_sensitive: bool = False) -> List[int]:
    """Page numbers whose raw text contains `search_text` verbatim."""
    needle = search_text if case_sensitive else search_text.lower()
    found = []
    for page in pages:
        haystack = page.raw_text if case_sensitive else page.raw_text.lower()
        if needle in haystack:
            found.append(page.page_number)
    return found
