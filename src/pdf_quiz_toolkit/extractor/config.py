"""
Module: extractor.config

Purpose:
    Configuration dataclass for the chunked extraction pipeline. Provides
    immutable settings for chunk planning, concurrency and retry behavior.

Key Classes:
    - ExtractionConfig: Main configuration for extraction

Dependencies:
    - dataclasses: For frozen dataclass support
    - os: Environment overrides

Used By:
    - extractor.pipeline: Uses ExtractionConfig for pipeline settings
    - extractor.client: Retry cap and backoff
    - cli: Builds config from environment and flags
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional

from pdf_quiz_toolkit.errors import ConfigurationError
from .generation import DEFAULT_INSTRUCTIONS, DEFAULT_MODEL_NAME

DEFAULT_CHUNK_SIZE = 10
DEFAULT_OVERLAP = 1
DEFAULT_MAX_CONCURRENT_CHUNKS = 3
DEFAULT_MAX_ATTEMPTS_CAP = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0


@dataclass(frozen=True)
class ExtractionConfig:
    """
    Configuration for the extraction pipeline.

    Attributes:
        chunk_size: Pages per chunk (default 10)
        overlap: Pages shared by consecutive chunks (default 1)
        max_concurrent_chunks: Chunk extractions allowed in flight (default 3)
        max_attempts_cap: Upper bound on attempts per chunk; the effective
            count is min(number of keys, cap) (default 3)
        retry_backoff_seconds: Fixed wait between attempts (default 1.0)
        collapse_adjacent: Run the adjacent-duplicate pass after merging (default True)
        allow_empty_chunks: Accept an empty question array from a chunk
            instead of treating it as a failed attempt (default False)
        model_name: Generation model used by GeminiGenerator
        instructions: Prompt sent with every chunk
    """
    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_OVERLAP
    max_concurrent_chunks: int = DEFAULT_MAX_CONCURRENT_CHUNKS
    max_attempts_cap: int = DEFAULT_MAX_ATTEMPTS_CAP
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    collapse_adjacent: bool = True
    allow_empty_chunks: bool = False
    model_name: str = DEFAULT_MODEL_NAME
    instructions: str = DEFAULT_INSTRUCTIONS

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive: {self.chunk_size}")
        if not (0 <= self.overlap < self.chunk_size):
            raise ValueError(
                f"overlap must be 0-{self.chunk_size - 1}: {self.overlap}"
            )
        if self.max_concurrent_chunks <= 0:
            raise ValueError(
                f"max_concurrent_chunks must be positive: {self.max_concurrent_chunks}"
            )
        if self.max_attempts_cap <= 0:
            raise ValueError(f"max_attempts_cap must be positive: {self.max_attempts_cap}")
        if self.retry_backoff_seconds < 0:
            raise ValueError(
                f"retry_backoff_seconds cannot be negative: {self.retry_backoff_seconds}"
            )
        if not self.instructions.strip():
            raise ValueError("instructions cannot be empty")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides,
    ) -> "ExtractionConfig":
        """
        Build a config from environment variables.

        Recognized variables:
            QUIZ_CHUNK_SIZE, QUIZ_CHUNK_OVERLAP, QUIZ_MAX_CONCURRENT_CHUNKS,
            QUIZ_RETRY_BACKOFF_SECONDS, GEMINI_MODEL

        Keyword overrides win over the environment.

        Raises:
            ConfigurationError: If a variable is set to an invalid value.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        def read(name: str, field_name: str, convert: Callable[[str], object]) -> None:
            raw = env.get(name)
            if raw is None or not raw.strip():
                return
            try:
                values[field_name] = convert(raw.strip())
            except ValueError as e:
                raise ConfigurationError(f"Invalid {name}={raw!r}: {e}") from e

        read("QUIZ_CHUNK_SIZE", "chunk_size", int)
        read("QUIZ_CHUNK_OVERLAP", "overlap", int)
        read("QUIZ_MAX_CONCURRENT_CHUNKS", "max_concurrent_chunks", int)
        read("QUIZ_RETRY_BACKOFF_SECONDS", "retry_backoff_seconds", float)
        read("GEMINI_MODEL", "model_name", str)
        values.update(overrides)

        try:
            return cls(**values)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def with_overrides(self, **changes) -> "ExtractionConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
