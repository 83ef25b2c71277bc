"""
Module: errors

Purpose:
    Error taxonomy for the chunked extraction pipeline. Every error raised
    by the pipeline derives from QuizExtractionError so callers can catch
    one type at the service boundary.

Key Classes:
    - ChunkSplitError: Source PDF unreadable while copying pages (fatal)
    - ParseError: No question array in a generator reply (retried)
    - SchemaValidationError: Extracted item violates the question contract (retried)
    - ExtractionExhaustedError: All attempts for one chunk failed (fatal)
    - ExtractionCancelledError: Chunk abandoned after another chunk failed
    - ConfigurationError: Missing or invalid settings

Key Functions:
    - to_user_message(): Generic failure text safe to show end users
"""

from __future__ import annotations

from typing import Optional

GENERIC_FAILURE_MESSAGE = (
    "Could not extract questions from the document. Please try again in a few minutes."
)


class QuizExtractionError(Exception):
    """Base class for all pipeline errors."""

    retryable: bool = False


class ConfigurationError(QuizExtractionError):
    """Raised when required settings are missing or invalid."""


class ChunkSplitError(QuizExtractionError):
    """Raised when the source document cannot be parsed or its pages copied."""


class ParseError(QuizExtractionError):
    """Raised when no question array can be located in a generator reply."""

    retryable = True

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class SchemaValidationError(QuizExtractionError):
    """
    Raised when an extracted item violates the question contract.

    Attributes:
        position: 0-based index of the first offending item in the batch.
        path: Dotted path of the offending field inside that item.
        errors: Individual violation messages.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        path: str = "",
        errors: list[str] | None = None,
    ):
        super().__init__(message)
        self.position = position
        self.path = path
        self.errors = errors or []


class ExtractionExhaustedError(QuizExtractionError):
    """
    Raised when every attempt for a chunk failed.

    Attributes:
        attempts: Number of attempts made.
        last_error: Error raised by the final attempt.
        chunk_index: Chunk that failed, when known.
    """

    def __init__(
        self,
        attempts: int,
        last_error: BaseException,
        chunk_index: Optional[int] = None,
    ):
        where = f" for chunk {chunk_index}" if chunk_index is not None else ""
        super().__init__(
            f"Failed to extract questions{where} after {attempts} attempts: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error
        self.chunk_index = chunk_index


class ExtractionCancelledError(QuizExtractionError):
    """Raised inside a chunk extraction after the run was cancelled."""


def to_user_message(error: BaseException) -> str:
    """
    Map any pipeline error to text for end users.

    Internal details (attempt counts, chunk indices, raw replies) are never
    included. Configuration problems are reported as such since retrying
    will not help.
    """
    if isinstance(error, ConfigurationError):
        return "Question extraction is not configured. Please contact the administrator."
    if isinstance(error, ChunkSplitError):
        return "The document could not be read. Please check that it is a valid PDF."
    return GENERIC_FAILURE_MESSAGE
