"""
Module: extractor

Purpose:
    Chunked extraction pipeline for turning large PDFs into deduplicated
    quiz questions. Splits the document into overlapping page ranges,
    extracts each through the generation service with retries and
    credential rotation, then merges the results in page order.

Key Functions:
    - extract_questions_from_pdf(): Main entry point for extraction
    - plan_chunks(): Page range planning
    - merge_chunk_results(): Ordered dedup of chunk results

Key Classes:
    - ExtractionConfig: Configuration for extraction settings
    - PipelineOrchestrator: Single-use run state machine
    - PipelineResult: Container for extraction output
    - CredentialPool: Round-robin API keys
    - ExtractionClient: Per-chunk extraction with retries
    - GeminiGenerator: Generation service implementation

Dependencies:
    - fitz (PyMuPDF): Page counting and copying
    - google-genai: Generation service
    - jsonschema: Question validation
    - portalocker: Locked timing output
"""

from .config import ExtractionConfig
from .credentials import CredentialPool
from .client import ExtractionClient, RetryPolicy, run_with_retries
from .generation import GeminiGenerator, QuestionGenerator, generate_quiz_title
from .merging import MergeReport, merge_chunk_results
from .planning import plan_chunks, plan_for_document
from .pipeline import (
    PipelineOrchestrator,
    PipelineResult,
    PipelineState,
    ProgressEvent,
    extract_questions_from_pdf,
)

__all__ = [
    "extract_questions_from_pdf",
    "ExtractionConfig",
    "CredentialPool",
    "ExtractionClient",
    "RetryPolicy",
    "run_with_retries",
    "GeminiGenerator",
    "QuestionGenerator",
    "generate_quiz_title",
    "MergeReport",
    "merge_chunk_results",
    "plan_chunks",
    "plan_for_document",
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineState",
    "ProgressEvent",
]
