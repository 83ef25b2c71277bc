"""
Module: extractor.merging

Purpose:
    Combines per-chunk results into one ordered, deduplicated question list.
    Questions re-extracted from an overlap page appear in both neighbouring
    chunks; the first occurrence in page order is kept and tagged with its
    source chunk.

Key Functions:
    - merge_chunk_results(): Sort, dedup and tag chunk results

Key Classes:
    - MergeReport: Merged questions plus dedup counters

Used By:
    - extractor.pipeline: Merging phase
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Set, Tuple

from pdf_quiz_toolkit.core.models import ChunkResult, MergedQuestion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeReport:
    """
    Result of merging chunk results.

    Attributes:
        questions: Deduplicated questions in document order.
        duplicates_skipped: Questions dropped by the seen-key pass.
        adjacent_removed: Questions dropped by the adjacent-duplicate pass.
            Always 0 for well-formed input; anything else means the key
            pass let a duplicate through.
    """
    questions: Tuple[MergedQuestion, ...]
    duplicates_skipped: int = 0
    adjacent_removed: int = 0

    def __len__(self) -> int:
        return len(self.questions)


def _dedup_by_key(ordered: List[ChunkResult]) -> Tuple[List[MergedQuestion], int]:
    kept: List[MergedQuestion] = []
    seen: Set[str] = set()
    skipped = 0

    for result in ordered:
        logger.debug(
            f"Merging chunk {result.index} (pages {result.start_page}-{result.end_page}): "
            f"{len(result.questions)} question(s)"
        )
        provenance = result.provenance
        for question in result.questions:
            key = question.dedup_key
            if key in seen:
                skipped += 1
                logger.debug(f"Skipped duplicate question: {question.preview()}")
                continue
            seen.add(key)
            kept.append(MergedQuestion(question, provenance))

    return kept, skipped


def _collapse_adjacent(items: List[MergedQuestion]) -> Tuple[List[MergedQuestion], int]:
    """
    Drop items whose key equals the immediately preceding item's key.

    Redundant after _dedup_by_key; firing here points at an upstream
    ordering or hashing fault, so each removal is logged as a warning.
    """
    result: List[MergedQuestion] = []
    removed = 0
    last_key = None

    for item in items:
        key = item.question.dedup_key
        if key == last_key:
            removed += 1
            logger.warning(
                f"Removed consecutive duplicate question from chunk "
                f"{item.provenance.chunk_index}: {item.question.preview()}"
            )
            continue
        result.append(item)
        last_key = key

    return result, removed


def merge_chunk_results(
    results: Iterable[ChunkResult],
    *,
    collapse_adjacent: bool = True,
) -> MergeReport:
    """
    Merge chunk results into one deduplicated list.

    Steps:
    1. Sort results by chunk index (completion order is irrelevant)
    2. Walk chunks in order, questions in their original order
    3. Keep the first question for each dedup key, tagged with its chunk
    4. Optionally drop consecutive items sharing a key

    The output depends only on the set of results, never on their order.

    Args:
        results: Chunk results in any order.
        collapse_adjacent: Run step 4. Defaults to True.

    Returns:
        MergeReport with questions and counters.

    Raises:
        ValueError: If two results share a chunk index.

    Example:
        >>> report = merge_chunk_results([result_1, result_0])
        >>> report.questions[0].provenance.chunk_index
        0
    """
    ordered = sorted(results, key=lambda r: r.index)
    indexes = [r.index for r in ordered]
    if len(set(indexes)) != len(indexes):
        raise ValueError(f"Duplicate chunk indexes in merge input: {indexes}")

    kept, skipped = _dedup_by_key(ordered)
    logger.info(f"Total unique questions after merging: {len(kept)} ({skipped} duplicate(s) skipped)")

    removed = 0
    if collapse_adjacent:
        kept, removed = _collapse_adjacent(kept)
        if removed:
            logger.warning(f"Adjacent-duplicate pass removed {removed} question(s)")

    return MergeReport(tuple(kept), duplicates_skipped=skipped, adjacent_removed=removed)
