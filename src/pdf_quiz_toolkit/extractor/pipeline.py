"""
Module: extractor.pipeline

Purpose:
    Main pipeline orchestrator for chunked PDF question extraction.
    Coordinates planning, page splitting, concurrent per-chunk extraction
    and merging into one deduplicated question list.

Key Functions:
    - extract_questions_from_pdf(): Main entry point for extraction

Key Classes:
    - PipelineOrchestrator: Single-use state machine for one run
    - PipelineState: PENDING -> PLANNING -> EXTRACTING -> MERGING -> DONE | FAILED
    - PipelineResult: Container for extraction output
    - ProgressEvent: Progress notification for callers

Dependencies:
    - concurrent.futures: Bounded chunk fan-out
    - extractor.planning / utils.pdf / client / merging

Used By:
    - cli: Command-line extraction
    - Calling services (in-process library use)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pdf_quiz_toolkit.core.models import Chunk, ChunkResult, MergedQuestion, SourceDocument
from pdf_quiz_toolkit.core.utils.serialization import serialize_merged
from pdf_quiz_toolkit.errors import ExtractionCancelledError
from .client import ExtractionClient, SleepFn
from .config import ExtractionConfig
from .credentials import CredentialPool
from .generation import QuestionGenerator
from .merging import MergeReport, merge_chunk_results
from .planning import plan_chunks
from .timing import TimingLog, timed_phase
from .utils.pdf import build_chunks, load_document

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Lifecycle of one pipeline run. DONE and FAILED are terminal."""
    PENDING = "pending"
    PLANNING = "planning"
    EXTRACTING = "extracting"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


@dataclass(frozen=True)
class ProgressEvent:
    """
    Progress notification.

    Attributes:
        stage: "planning", "extracting", "merging", "completed" or "failed".
        completed_chunks: Chunks finished so far.
        total_chunks: Chunks planned (0 before planning finishes).
        message: Human-readable description.
    """
    stage: str
    completed_chunks: int
    total_chunks: int
    message: str


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class PipelineResult:
    """
    Result of extracting a PDF.

    Attributes:
        questions: Deduplicated questions in document order, with provenance.
        total_pages: Page count of the source document.
        chunk_count: Number of chunks processed.
        duplicates_skipped: Questions dropped as overlap duplicates.
        adjacent_removed: Questions dropped by the adjacent-duplicate pass.
        timing: Timing metrics for the run.
        document_name: Display name of the source document.
    """
    questions: List[MergedQuestion]
    total_pages: int
    chunk_count: int
    duplicates_skipped: int = 0
    adjacent_removed: int = 0
    timing: TimingLog = field(default_factory=TimingLog)
    document_name: str = ""

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def to_dicts(self) -> List[Dict[str, Any]]:
        """Questions in wire format with sourceChunk/sourcePages tags."""
        return [serialize_merged(q) for q in self.questions]


class PipelineOrchestrator:
    """
    Runs one extraction: plan -> split -> extract (concurrent) -> merge.

    Instances are single-use. The first chunk that fails permanently moves
    the run to FAILED, cancels queued chunks and signals in-flight ones to
    stop at their next attempt or backoff. No partial result is produced.

    Example:
        >>> orchestrator = PipelineOrchestrator(document, GeminiGenerator(), pool)
        >>> result = orchestrator.run()
        >>> orchestrator.state
        <PipelineState.DONE: 'done'>
    """

    def __init__(
        self,
        document: SourceDocument,
        generator: QuestionGenerator,
        pool: CredentialPool,
        *,
        config: Optional[ExtractionConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
        timing_log: Optional[TimingLog] = None,
        sleep: Optional[SleepFn] = None,
    ):
        self.document = document
        self.pool = pool
        self.config = config or ExtractionConfig()
        self.client = ExtractionClient(
            generator,
            pool,
            instructions=self.config.instructions,
            max_attempts_cap=self.config.max_attempts_cap,
            backoff_seconds=self.config.retry_backoff_seconds,
            allow_empty=self.config.allow_empty_chunks,
            sleep=sleep,
        )
        self.timing_log = timing_log or TimingLog()
        self._progress_callback = progress_callback
        self._state = PipelineState.PENDING
        self._error: Optional[BaseException] = None
        self._result: Optional[PipelineResult] = None
        self._cancel_event = threading.Event()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def error(self) -> Optional[BaseException]:
        """Error that moved the run to FAILED, if any."""
        return self._error

    @property
    def result(self) -> Optional[PipelineResult]:
        """Result of a DONE run, if any."""
        return self._result

    def _transition(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline {self._state.value} -> {state.value}")
        self._state = state

    def _emit(self, stage: str, completed: int, total: int, message: str) -> None:
        if self._progress_callback is not None:
            self._progress_callback(ProgressEvent(stage, completed, total, message))

    def run(self) -> PipelineResult:
        """
        Execute the pipeline.

        Returns:
            PipelineResult with the merged questions.

        Raises:
            RuntimeError: If this instance has already been run.
            ChunkSplitError: If the document cannot be split.
            ExtractionExhaustedError: If any chunk exhausts its attempts.
        """
        if self._state is not PipelineState.PENDING:
            raise RuntimeError("PipelineOrchestrator instances are single-use")

        name = self.document.name or "document"
        try:
            with timed_phase(self.timing_log, "total"):
                self._transition(PipelineState.PLANNING)
                with timed_phase(self.timing_log, "planning"):
                    ranges = plan_chunks(
                        self.document.total_pages, self.config.chunk_size, self.config.overlap
                    )
                total = len(ranges)
                logger.info(
                    f"{name}: {self.document.total_pages} pages -> {total} chunk(s) "
                    f"(size={self.config.chunk_size}, overlap={self.config.overlap})"
                )
                self._emit("planning", 0, total, f"Created {total} chunk(s) for {name}")

                self._transition(PipelineState.EXTRACTING)
                with timed_phase(self.timing_log, "splitting"):
                    chunks = build_chunks(self.document, ranges)
                with timed_phase(self.timing_log, "extracting"):
                    results = self._extract_all(chunks)

                self._transition(PipelineState.MERGING)
                self._emit("merging", total, total, "Merging chunk results...")
                with timed_phase(self.timing_log, "merging"):
                    report = merge_chunk_results(
                        results, collapse_adjacent=self.config.collapse_adjacent
                    )
        except BaseException as e:
            self._error = e
            self._transition(PipelineState.FAILED)
            logger.error(f"{name}: extraction failed: {e}")
            try:
                self._emit("failed", 0, 0, str(e))
            except Exception as callback_error:
                logger.error(f"{name}: progress callback failed on 'failed' event: {callback_error}")
            raise

        self._result = self._build_result(report, total)
        self._transition(PipelineState.DONE)
        logger.info(f"{name}: extracted {self._result.question_count} unique question(s)")
        logger.debug(self.timing_log.summary())
        self._emit(
            "completed", total, total,
            f"Completed {name} ({self._result.question_count} unique questions extracted)",
        )
        return self._result

    def _build_result(self, report: MergeReport, chunk_count: int) -> PipelineResult:
        return PipelineResult(
            questions=list(report.questions),
            total_pages=self.document.total_pages,
            chunk_count=chunk_count,
            duplicates_skipped=report.duplicates_skipped,
            adjacent_removed=report.adjacent_removed,
            timing=self.timing_log,
            document_name=self.document.name,
        )

    def _extract_one(self, chunk: Chunk) -> ChunkResult:
        if self._cancel_event.is_set():
            raise ExtractionCancelledError(f"Chunk {chunk.index} cancelled before start")
        with timed_phase(self.timing_log, "extract", chunk_id=chunk.chunk_id):
            return self.client.extract(chunk, cancel_event=self._cancel_event)

    def _extract_all(self, chunks: List[Chunk]) -> List[ChunkResult]:
        """
        Extract every chunk with bounded concurrency.

        Returns only when all chunks succeeded; otherwise raises the first
        permanent failure after cancelling the rest.
        """
        total = len(chunks)
        workers = min(self.config.max_concurrent_chunks, total)
        results: List[ChunkResult] = []

        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="quiz-chunk")
        try:
            pending: set[Future] = {executor.submit(self._extract_one, c) for c in chunks}
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    error = future.exception()
                    if error is not None:
                        raise error
                    result = future.result()
                    results.append(result)
                    logger.info(
                        f"Chunk {result.index} (pages {result.start_page}-{result.end_page}) "
                        f"done: {len(result.questions)} question(s) [{len(results)}/{total}]"
                    )
                    self._emit(
                        "extracting", len(results), total,
                        f"Processed chunk {result.index + 1}/{total} "
                        f"(pages {result.start_page}-{result.end_page})",
                    )
        except BaseException:
            self._cancel_event.set()
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return results


def extract_questions_from_pdf(
    source: Union[bytes, Path],
    generator: QuestionGenerator,
    pool: CredentialPool,
    *,
    config: Optional[ExtractionConfig] = None,
    progress_callback: Optional[ProgressCallback] = None,
    name: str = "",
) -> PipelineResult:
    """
    Extract deduplicated quiz questions from a PDF.

    Pipeline:
    1. Count pages and plan overlapping chunks
    2. Copy each chunk's pages into its own PDF
    3. Extract each chunk (bounded concurrency, retries with key rotation)
    4. Merge results in page order, dropping overlap duplicates

    Args:
        source: PDF bytes or path to a PDF file.
        generator: Generation service client.
        pool: Credential pool shared by all chunk extractions.
        config: Optional extraction configuration.
        progress_callback: Optional progress receiver.
        name: Display name for logs.

    Returns:
        PipelineResult with ordered questions and provenance.

    Raises:
        FileNotFoundError: If a path is given and doesn't exist.
        ChunkSplitError: If the PDF can't be parsed or split.
        ExtractionExhaustedError: If any chunk fails every attempt.

    Example:
        >>> result = extract_questions_from_pdf(
        ...     Path("biology_notes.pdf"),
        ...     GeminiGenerator(),
        ...     CredentialPool.from_env(),
        ... )
        >>> print(f"Extracted {result.question_count} questions")
        Extracted 42 questions
    """
    document = load_document(source, name=name)
    orchestrator = PipelineOrchestrator(
        document,
        generator,
        pool,
        config=config,
        progress_callback=progress_callback,
    )
    return orchestrator.run()
