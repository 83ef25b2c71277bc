"""
Module: extractor.utils.pdf

Purpose:
    PDF page utilities. Counts pages and copies page ranges of a source PDF
    into new, independent PDF documents for chunked extraction.

Key Functions:
    - count_pages(): Number of pages in PDF bytes
    - load_document(): Read a PDF from bytes or a path into a SourceDocument
    - extract_page_range(): Copy a 1-based inclusive page range to new PDF bytes
    - build_chunks(): Materialize Chunk objects for planned page ranges
    - extract_text(): Plain text of the leading pages (title generation)

Dependencies:
    - fitz (PyMuPDF): PDF parsing and page copying

Used By:
    - extractor.pipeline: Splits the document before extraction
    - cli: Loads the input PDF
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Sequence, Union

import fitz

from pdf_quiz_toolkit.core.models import Chunk, PageRange, SourceDocument
from pdf_quiz_toolkit.errors import ChunkSplitError

logger = logging.getLogger(__name__)


@contextmanager
def _open_pdf(content: bytes) -> Generator[fitz.Document, None, None]:
    """Open PDF bytes read-only, mapping parse failures to ChunkSplitError."""
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except (RuntimeError, ValueError, TypeError) as e:
        raise ChunkSplitError(f"Failed to open PDF: {e}") from e

    try:
        if doc.needs_pass:
            raise ChunkSplitError("PDF is encrypted")
        yield doc
    finally:
        doc.close()


def count_pages(content: bytes) -> int:
    """
    Count pages in PDF bytes.

    Raises:
        ChunkSplitError: If the PDF cannot be parsed or has no pages.
    """
    with _open_pdf(content) as doc:
        total = doc.page_count
    if total <= 0:
        raise ChunkSplitError("PDF has no pages")
    return total


def load_document(source: Union[bytes, str, os.PathLike], name: str = "") -> SourceDocument:
    """
    Load a PDF into a SourceDocument with its page count.

    Args:
        source: PDF bytes, or a str or os.PathLike path to a PDF file.
        name: Display name. Defaults to the file name for paths.

    Raises:
        FileNotFoundError: If a path is given and does not exist.
        ChunkSplitError: If the PDF cannot be parsed.
    """
    if isinstance(source, (str, os.PathLike)):
        source = Path(source)
        if not source.exists():
            raise FileNotFoundError(f"PDF not found: {source}")
        content = source.read_bytes()
        name = name or source.name
    else:
        content = bytes(source)

    return SourceDocument(content=content, total_pages=count_pages(content), name=name)


def extract_page_range(content: bytes, start_page: int, end_page: int) -> bytes:
    """
    Copy a page range into a new PDF.

    Pages keep their order and are renumbered from 1 in the new document.
    The source bytes are never modified. A range extending past the end of
    the document is clamped to the pages that exist.

    Args:
        content: Source PDF bytes.
        start_page: First page, 1-based inclusive.
        end_page: Last page, 1-based inclusive.

    Returns:
        Bytes of the new PDF.

    Raises:
        ValueError: If start_page < 1 or end_page < start_page.
        ChunkSplitError: If the source cannot be parsed, or the range has
            no pages inside the document.

    Example:
        >>> chunk_bytes = extract_page_range(pdf_bytes, 10, 19)
        >>> count_pages(chunk_bytes)
        10
    """
    if start_page < 1 or end_page < start_page:
        raise ValueError(f"Invalid page range {start_page}-{end_page}")

    with _open_pdf(content) as src:
        last = min(end_page, src.page_count)
        if start_page > last:
            raise ChunkSplitError(
                f"Page range {start_page}-{end_page} is outside the document "
                f"({src.page_count} pages)"
            )

        out = fitz.open()
        try:
            # PyMuPDF pages are 0-indexed
            out.insert_pdf(src, from_page=start_page - 1, to_page=last - 1)
            data = out.tobytes(garbage=3, deflate=True)
        except (RuntimeError, ValueError) as e:
            raise ChunkSplitError(
                f"Failed to copy pages {start_page}-{last}: {e}"
            ) from e
        finally:
            out.close()

    if last < end_page:
        logger.debug(f"Clamped page range {start_page}-{end_page} to {start_page}-{last}")
    return data


def build_chunks(document: SourceDocument, ranges: Sequence[PageRange]) -> List[Chunk]:
    """
    Materialize chunks for planned page ranges.

    A single range covering the whole document reuses the original bytes.

    Raises:
        ChunkSplitError: If any range cannot be copied.
    """
    return [build_chunk(document, page_range) for page_range in ranges]


def build_chunk(document: SourceDocument, page_range: PageRange) -> Chunk:
    """Materialize one chunk. See build_chunks()."""
    end = min(page_range.end_page, document.total_pages)
    if page_range.start_page == 1 and end == document.total_pages:
        content = document.content
    else:
        content = extract_page_range(
            document.content, page_range.start_page, page_range.end_page
        )

    return Chunk(
        content=content,
        start_page=page_range.start_page,
        end_page=end,
        total_pages=document.total_pages,
        index=page_range.index,
    )


def extract_text(content: bytes, max_pages: int = 2) -> str:
    """
    Extract plain text from the first pages of a PDF.

    Used to give the title generator a short sample of the document.

    Args:
        content: PDF bytes.
        max_pages: Number of leading pages to read. Defaults to 2.

    Returns:
        Extracted text, empty string if the pages carry no text layer.

    Raises:
        ChunkSplitError: If the PDF cannot be parsed.
    """
    with _open_pdf(content) as doc:
        pages = [doc[i].get_text("text") or "" for i in range(min(max_pages, doc.page_count))]
    return "\n".join(pages).strip()
