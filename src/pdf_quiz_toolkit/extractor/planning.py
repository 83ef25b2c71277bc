"""
Module: extractor.planning

Purpose:
    Chunk boundary planning. Splits a page count into overlapping 1-based
    inclusive page ranges so content that straddles a boundary appears
    whole in at least one chunk.

Key Functions:
    - plan_chunks(): Compute page ranges for a document
    - plan_for_document(): Effective (chunk_size, overlap) for a page count

Dependencies:
    - core.models.PageRange

Used By:
    - extractor.pipeline: Planning phase
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from pdf_quiz_toolkit.core.models import PageRange
from .config import DEFAULT_CHUNK_SIZE, DEFAULT_OVERLAP

logger = logging.getLogger(__name__)


def plan_for_document(
    total_pages: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> Tuple[int, int]:
    """
    Effective chunk size and overlap for a document.

    Documents that fit in one chunk are processed whole with no overlap.

    Example:
        >>> plan_for_document(4)
        (4, 0)
        >>> plan_for_document(25)
        (10, 1)
    """
    if total_pages <= chunk_size:
        return total_pages, 0
    return chunk_size, overlap


def plan_chunks(
    total_pages: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> List[PageRange]:
    """
    Compute overlapping page ranges for a document.

    Consecutive ranges share exactly `overlap` pages. The last range may be
    shorter than `chunk_size`.

    Args:
        total_pages: Number of pages in the document.
        chunk_size: Pages per chunk. Defaults to 10.
        overlap: Pages shared by consecutive chunks. Defaults to 1.

    Returns:
        Page ranges in increasing page order, indexed from 0.

    Raises:
        ValueError: If total_pages or chunk_size is not positive, or overlap
            is not in [0, chunk_size).

    Example:
        >>> [str(r) for r in plan_chunks(25)]
        ['1-10', '10-19', '19-25']
    """
    if total_pages <= 0:
        raise ValueError(f"total_pages must be positive: {total_pages}")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive: {chunk_size}")
    if not (0 <= overlap < chunk_size):
        raise ValueError(f"overlap must be 0-{chunk_size - 1}: {overlap}")

    chunk_size, overlap = plan_for_document(total_pages, chunk_size, overlap)
    step = chunk_size - overlap

    ranges: List[PageRange] = []
    start = 1
    while True:
        end = min(start + chunk_size - 1, total_pages)
        ranges.append(PageRange(len(ranges), start, end))
        if end >= total_pages:
            break
        start += step

    logger.debug(
        f"Planned {len(ranges)} chunk(s) for {total_pages} pages "
        f"(size={chunk_size}, overlap={overlap})"
    )
    return ranges
