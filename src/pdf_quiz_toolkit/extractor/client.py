"""
Module: extractor.client

Purpose:
    Sends one chunk to the generation service with credential rotation and
    fixed-backoff retries, then parses and validates the reply. A chunk's
    questions are accepted all-or-nothing.

Key Classes:
    - RetryPolicy: Attempt budget and fixed backoff
    - Attempt: One attempt in progress (number, credential, is_last)
    - ExtractionClient: Chunk -> ChunkResult

Key Functions:
    - run_with_retries(): Bounded-attempts combinator, independent of I/O

Dependencies:
    - tenacity: Stop/wait/retry strategy for attempts
    - extractor.credentials: Credential leasing
    - extractor.parsing: Array location in free-form replies
    - core.schemas: Question validation

Used By:
    - extractor.pipeline: One extract() call per chunk
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_fixed,
)
from tenacity.nap import sleep as blocking_sleep

from pdf_quiz_toolkit.core.models import Chunk, ChunkResult, Question
from pdf_quiz_toolkit.core.schemas import validate_question_items
from pdf_quiz_toolkit.errors import (
    ExtractionCancelledError,
    ExtractionExhaustedError,
    ParseError,
)
from .config import DEFAULT_MAX_ATTEMPTS_CAP, DEFAULT_RETRY_BACKOFF_SECONDS
from .credentials import CredentialPool, mask_credential
from .generation import DEFAULT_INSTRUCTIONS, QuestionGenerator
from .parsing import find_json_array

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], None]
CredentialFn = Callable[[int], str]


@dataclass(frozen=True)
class Attempt:
    """A single attempt in progress."""
    number: int  # 0-based
    credential: str
    is_last: bool

    def __repr__(self) -> str:
        return (
            f"Attempt(number={self.number}, credential={mask_credential(self.credential)}, "
            f"is_last={self.is_last})"
        )


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry policy with a fixed backoff.

    Attributes:
        max_attempts: Total attempts, including the first.
        backoff_seconds: Wait between a failed attempt and the next one.
    """
    max_attempts: int
    backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive: {self.max_attempts}")
        if self.backoff_seconds < 0:
            raise ValueError(f"backoff_seconds cannot be negative: {self.backoff_seconds}")

    @classmethod
    def for_pool(
        cls,
        pool_size: int,
        cap: int = DEFAULT_MAX_ATTEMPTS_CAP,
        backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
    ) -> "RetryPolicy":
        """One attempt per credential, at most `cap` attempts."""
        return cls(min(pool_size, cap), backoff_seconds)


def _backoff_sleep(sleep: Optional[SleepFn], cancel_event: Optional[threading.Event]) -> SleepFn:
    """
    Sleep function for tenacity that stops early on cancellation.

    Without an injected `sleep`, waiting on `cancel_event` returns as soon
    as the event is set.
    """
    def backoff(seconds: float) -> None:
        if sleep is not None:
            sleep(seconds)
        elif cancel_event is not None:
            cancel_event.wait(seconds)
        else:
            blocking_sleep(seconds)
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelledError("Cancelled during retry backoff")

    return backoff


def run_with_retries(
    operation: Callable[[Attempt], T],
    policy: RetryPolicy,
    credential_for: CredentialFn,
    *,
    sleep: Optional[SleepFn] = None,
    cancel_event: Optional[threading.Event] = None,
    label: str = "operation",
    chunk_index: Optional[int] = None,
) -> T:
    """
    Run `operation` until it succeeds or the policy's attempts run out.

    Any exception from `operation` counts as a failed attempt, except
    ExtractionCancelledError which propagates immediately. The credential
    for an attempt is requested only when that attempt starts.

    Args:
        operation: Called with each Attempt; its return value is returned.
        policy: Attempt budget and backoff.
        credential_for: Maps attempt number to the credential to use.
        sleep: Backoff function. Defaults to a cancellable wait on
            cancel_event when one is given, else a blocking sleep.
        cancel_event: Cooperative cancellation flag, checked before each
            attempt and after each backoff.
        label: Name used in log lines.
        chunk_index: Recorded on ExtractionExhaustedError.

    Raises:
        ExtractionExhaustedError: Chained from the last attempt's error.
        ExtractionCancelledError: If cancelled before an attempt or during backoff.

    Example:
        >>> policy = RetryPolicy(max_attempts=2, backoff_seconds=0)
        >>> run_with_retries(lambda a: a.number, policy, lambda n: "key")
        0
    """
    credentials: List[str] = []

    def log_retry(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            f"{label} attempt {state.attempt_number}/{policy.max_attempts} failed "
            f"(key {mask_credential(credentials[-1])}): {error}. "
            f"Retrying in {policy.backoff_seconds:g}s"
        )

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_fixed(policy.backoff_seconds),
        retry=retry_if_not_exception_type(ExtractionCancelledError),
        sleep=_backoff_sleep(sleep, cancel_event),
        before_sleep=log_retry,
    )

    try:
        for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number - 1
                if cancel_event is not None and cancel_event.is_set():
                    raise ExtractionCancelledError(f"Cancelled before attempt {number + 1}")
                credentials.append(credential_for(number))
                return operation(
                    Attempt(number, credentials[-1], number == policy.max_attempts - 1)
                )
    except RetryError as e:
        last = e.last_attempt
        last_error = last.exception()
        logger.error(f"{label} attempt {last.attempt_number}/{policy.max_attempts} failed: {last_error}")
        raise ExtractionExhaustedError(last.attempt_number, last_error, chunk_index) from last_error

    raise RuntimeError(f"{label}: retry loop ended without an outcome")


class ExtractionClient:
    """
    Extracts validated questions from one chunk.

    Attempts = min(len(pool), max_attempts_cap). Each attempt leases the
    next credential from the shared pool, calls the generator, locates the
    question array and validates every item. A parse or schema failure
    rejects the whole reply and counts as a failed attempt.

    Example:
        >>> client = ExtractionClient(GeminiGenerator(), CredentialPool(keys))
        >>> result = client.extract(chunk)
        >>> len(result.questions)
        12
    """

    def __init__(
        self,
        generator: QuestionGenerator,
        pool: CredentialPool,
        *,
        instructions: str = DEFAULT_INSTRUCTIONS,
        max_attempts_cap: int = DEFAULT_MAX_ATTEMPTS_CAP,
        backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        allow_empty: bool = False,
        sleep: Optional[SleepFn] = None,
    ):
        self.generator = generator
        self.pool = pool
        self.instructions = instructions
        self.allow_empty = allow_empty
        self.policy = RetryPolicy.for_pool(len(pool), max_attempts_cap, backoff_seconds)
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.policy.max_attempts

    def parse_response(self, text: str) -> List[Question]:
        """
        Parse and validate one generator reply.

        Raises:
            ParseError: No question array, or an empty one when empty
                chunks are not allowed.
            SchemaValidationError: An item violates the question contract.
        """
        items = find_json_array(text)
        if not items and not self.allow_empty:
            raise ParseError("Invalid questions format: empty question array", raw_text=text)
        return validate_question_items(items)

    def extract(
        self,
        chunk: Chunk,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ChunkResult:
        """
        Extract questions from a chunk.

        Raises:
            ExtractionExhaustedError: Every attempt failed.
            ExtractionCancelledError: The run was cancelled meanwhile.
        """
        label = f"Chunk {chunk.index} (pages {chunk.start_page}-{chunk.end_page})"

        def attempt_once(attempt: Attempt) -> List[Question]:
            logger.debug(f"{label}: attempt {attempt.number + 1}/{self.max_attempts}")
            text = self.generator.generate(chunk.content, self.instructions, attempt.credential)
            questions = self.parse_response(text)
            logger.debug(f"{label}: validated {len(questions)} question(s)")
            return questions

        questions = run_with_retries(
            attempt_once,
            self.policy,
            lambda _number: self.pool.lease(),
            sleep=self._sleep,
            cancel_event=cancel_event,
            label=label,
            chunk_index=chunk.index,
        )
        return ChunkResult.for_chunk(chunk, questions)
