"""
Module: chunks

Purpose:
    Data models for page-range chunking of a source document: the document
    itself, planned page ranges, materialized chunks, per-chunk extraction
    results and provenance-tagged merged questions.

Key Classes:
    - SourceDocument: PDF bytes plus known page count
    - PageRange: Planned chunk boundary (1-based, inclusive)
    - Chunk: Materialized sub-document for one page range
    - ChunkResult: Validated questions extracted from one chunk
    - Provenance: Source chunk index and page range of a merged question
    - MergedQuestion: Question tagged with its provenance

Dependencies:
    - dataclasses (std)
    - .questions.Question

Used By:
    - extractor.planning
    - extractor.utils.pdf
    - extractor.client
    - extractor.merging
    - extractor.pipeline
"""

from __future__ import annotations

from dataclasses import dataclass

from .questions import Question


def _check_page_span(start_page: int, end_page: int, total_pages: int) -> None:
    if not (1 <= start_page <= end_page <= total_pages):
        raise ValueError(
            f"Invalid page range {start_page}-{end_page} for {total_pages} pages "
            "(need 1 <= start <= end <= total)"
        )


@dataclass(frozen=True)
class SourceDocument:
    """
    Opaque PDF content with a known page count.

    Owned by the caller for the duration of a pipeline run; never mutated.

    Attributes:
        content: Raw PDF bytes.
        total_pages: Number of pages in the document.
        name: Display name for logs (usually the file name).
    """

    content: bytes
    total_pages: int
    name: str = ""

    def __post_init__(self) -> None:
        if self.total_pages <= 0:
            raise ValueError(f"total_pages must be positive: {self.total_pages}")

    def __repr__(self) -> str:
        return (
            f"SourceDocument(name={self.name!r}, total_pages={self.total_pages}, "
            f"size={len(self.content)})"
        )


@dataclass(frozen=True)
class PageRange:
    """
    Planned chunk boundary.

    Attributes:
        index: Zero-based sequence number in increasing page order.
        start_page: First page, 1-based inclusive.
        end_page: Last page, 1-based inclusive.
    """

    index: int
    start_page: int
    end_page: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"index cannot be negative: {self.index}")
        if not (1 <= self.start_page <= self.end_page):
            raise ValueError(f"Invalid page range {self.start_page}-{self.end_page}")

    @property
    def page_count(self) -> int:
        return self.end_page - self.start_page + 1

    def __str__(self) -> str:
        return f"{self.start_page}-{self.end_page}"


@dataclass(frozen=True)
class Chunk:
    """
    Independent sub-document for one page range.

    Produced once by the page extractor and consumed exactly once by the
    extraction client.

    Invariants:
        - 1 <= start_page <= end_page <= total_pages
        - index >= 0
    """

    content: bytes
    start_page: int
    end_page: int
    total_pages: int
    index: int

    def __post_init__(self) -> None:
        _check_page_span(self.start_page, self.end_page, self.total_pages)
        if self.index < 0:
            raise ValueError(f"index cannot be negative: {self.index}")

    @property
    def chunk_id(self) -> str:
        """Identifier used in logs and timing records."""
        return f"chunk_{self.index}"

    def __repr__(self) -> str:
        return (
            f"Chunk(index={self.index}, pages={self.start_page}-{self.end_page}"
            f"/{self.total_pages}, size={len(self.content)})"
        )


@dataclass(frozen=True)
class Provenance:
    """Source chunk index and page range of a merged question."""

    chunk_index: int
    start_page: int
    end_page: int

    @property
    def pages(self) -> str:
        """Page range rendered as "start-end"."""
        return f"{self.start_page}-{self.end_page}"


@dataclass(frozen=True)
class ChunkResult:
    """
    Validated questions extracted from a single chunk.

    Results may arrive out of submission order when chunks run concurrently;
    the merge engine re-sorts by index.
    """

    questions: tuple[Question, ...]
    index: int
    start_page: int
    end_page: int

    def __post_init__(self) -> None:
        if not isinstance(self.questions, tuple):
            object.__setattr__(self, "questions", tuple(self.questions))
        if self.index < 0:
            raise ValueError(f"index cannot be negative: {self.index}")
        if not (1 <= self.start_page <= self.end_page):
            raise ValueError(f"Invalid page range {self.start_page}-{self.end_page}")

    @classmethod
    def for_chunk(cls, chunk: Chunk, questions: tuple[Question, ...] | list[Question]) -> "ChunkResult":
        """Create a result carrying the chunk's index and page range."""
        return cls(tuple(questions), chunk.index, chunk.start_page, chunk.end_page)

    @property
    def provenance(self) -> Provenance:
        return Provenance(self.index, self.start_page, self.end_page)


@dataclass(frozen=True)
class MergedQuestion:
    """A deduplicated question tagged with where it was first found."""

    question: Question
    provenance: Provenance
