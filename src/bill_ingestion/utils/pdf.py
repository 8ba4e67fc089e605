"""PDF text-layer access using pdfplumber and PyMuPDF."""

from __future__ import annotations

import io

import fitz  # PyMuPDF
import pdfplumber

from ..models.internal import TextFragment


def extract_fragments_pdfplumber(file_bytes: bytes) -> list[list[TextFragment]]:
    """Return positioned words for each page using pdfplumber.

    ``y`` is the word's baseline (``bottom``) measured from the page top.
    """
    pages: list[list[TextFragment]] = []
    with pdfplumber.open(io.BytesIO(file_bytes)) as pdf:
        for page in pdf.pages:
            words = page.extract_words(keep_blank_chars=False, use_text_flow=False)
            pages.append([
                TextFragment(x=float(w["x0"]), y=float(w["bottom"]), text=w["text"])
                for w in words
            ])
    return pages


def extract_fragments_pymupdf(file_bytes: bytes) -> list[list[TextFragment]]:
    """Return positioned words for each page using PyMuPDF.

    Used when pdfplumber finds no words at all.
    """
    doc = fitz.open(stream=file_bytes, filetype="pdf")
    pages: list[list[TextFragment]] = []
    for page in doc:
        # (x0, y0, x1, y1, word, block_no, line_no, word_no)
        words = page.get_text("words")
        pages.append([TextFragment(x=w[0], y=w[3], text=w[4]) for w in words])
    doc.close()
    return pages


def extract_page_fragments(file_bytes: bytes) -> list[list[TextFragment]]:
    """Positioned words per page, falling back to PyMuPDF for an empty result."""
    pages = extract_fragments_pdfplumber(file_bytes)
    if any(pages):
        return pages
    return extract_fragments_pymupdf(file_bytes)


def detect_file_type(file_bytes: bytes) -> str:
    """Detect file type from magic bytes.

    Returns one of ``"pdf"``, ``"png"``, ``"jpeg"``, ``"tiff"``, or ``"unknown"``.
    """
    if file_bytes[:4] == b"%PDF":
        return "pdf"
    if file_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if file_bytes[:2] == b"\xff\xd8":
        return "jpeg"
    if file_bytes[:4] in (b"II*\x00", b"MM\x00*"):
        return "tiff"
    return "unknown"


def get_page_count(file_bytes: bytes) -> int:
    """Return the number of pages in a PDF."""
    doc = fitz.open(stream=file_bytes, filetype="pdf")
    count = len(doc)
    doc.close()
    return count
