"""
Text Extractor
==============
Pulls raw text out of exam documents using PyMuPDF (fitz).

This is the only place that touches binary documents. The result is one
complete string handed to the canonicalizer; scanned (image-only) PDFs give
back little or no text because no OCR is performed.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

PDF_SUFFIXES = {".pdf"}


def extract_pdf_text(pdf_path: str) -> str:
    """
    Extract the text of every page, pages separated by a blank line.

    Args:
        pdf_path: Path to the PDF file.

    Raises:
        FileNotFoundError: If the PDF doesn't exist.
        RuntimeError: If the PDF cannot be opened.
    """
    if not os.path.exists(pdf_path):
        raise FileNotFoundError(f"PDF not found: {pdf_path}")

    try:
        doc = fitz.open(pdf_path)
    except Exception as e:
        raise RuntimeError(f"Cannot open PDF {pdf_path}: {e}") from e

    page_texts: list[str] = []
    with doc:
        total_pages = doc.page_count
        logger.info(f"Extracting text from {pdf_path} ({total_pages} pages)")

        for page in doc:
            page_texts.append(page.get_text("text"))

    text = "\n\n".join(page_texts)
    if not text.strip():
        logger.warning(
            f"No text layer in {pdf_path}; scanned PDFs need OCR first"
        )
    return text


def load_source_text(path: str) -> str:
    """Read a PDF through PyMuPDF, anything else as UTF-8 text."""
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Source not found: {path}")

    if source.suffix.lower() in PDF_SUFFIXES:
        return extract_pdf_text(str(source))

    return source.read_text(encoding="utf-8", errors="replace")
