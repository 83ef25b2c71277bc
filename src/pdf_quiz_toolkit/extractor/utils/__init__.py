"""
Module: extractor.utils

Purpose:
    Utility subpackage with PDF page helpers used to split a document
    into chunks.

Key Modules:
    - pdf: Page counting and page-range copying

Dependencies:
    - fitz (PyMuPDF): PDF operations
"""

from .pdf import (
    build_chunk,
    build_chunks,
    count_pages,
    extract_page_range,
    extract_text,
    load_document,
)

__all__ = [
    "build_chunk",
    "build_chunks",
    "count_pages",
    "extract_page_range",
    "extract_text",
    "load_document",
]
