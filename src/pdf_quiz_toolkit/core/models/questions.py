"""
Module: questions

Purpose:
    Provides the Question dataclass - the structured quiz item produced by
    the extraction service and passed from extractor to merge engine.
    Immutable and validated on construction.

Key Functions:
    - Question.single(text, options, correct_index): Build a single-choice item
    - Question.multiple(text, options, correct_indexes): Build a multiple-choice item
    - Question.answer_indexes: Correct option indexes regardless of type
    - Question.dedup_key: Normalized text/options composite used for merging

Dependencies:
    - dataclasses (std)
    - enum (std)
    - re (std)

Used By:
    - core.models.chunks.ChunkResult
    - core.schemas.validator
    - core.utils.serialization
    - extractor.merging
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Optional, Sequence

_WHITESPACE_RE = re.compile(r"\s+")

# Separators used when composing the dedup key
KEY_TEXT_SEPARATOR = ":::"
KEY_OPTION_SEPARATOR = "|"


class QuestionType(str, Enum):
    """Answer mode of a quiz question."""

    SINGLE = "single"
    MULTIPLE = "multiple"


def normalize_text(value: str) -> str:
    """
    Normalize text for duplicate detection.

    Lowercases, trims and collapses internal whitespace runs to one space.

    Example:
        >>> normalize_text("  What   is\\n2+2? ")
        'what is 2+2?'
    """
    return _WHITESPACE_RE.sub(" ", value.lower().strip())


@dataclass(frozen=True)
class Question:
    """
    Structured quiz question (immutable).

    Attributes:
        text: Question stem as written in the source.
        type: QuestionType.SINGLE or QuestionType.MULTIPLE.
        options: Answer options, at least two.
        correct_index: Index of the correct option (single only).
        correct_indexes: Indexes of the correct options (multiple only).

    Invariants:
        - text is non-empty
        - len(options) >= 2
        - single: correct_index in [0, len(options)), correct_indexes empty
        - multiple: correct_indexes non-empty, each in [0, len(options)),
          correct_index is None

    Example:
        >>> q = Question.single("What is 2+2?", ["3", "4", "5", "6"], 1)
        >>> q.answer_indexes
        (1,)
    """

    text: str
    type: QuestionType
    options: tuple[str, ...]
    correct_index: Optional[int] = None
    correct_indexes: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        """Validate question on construction."""
        # Coerce list inputs so instances stay hashable
        if not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))
        if not isinstance(self.correct_indexes, tuple):
            object.__setattr__(self, "correct_indexes", tuple(self.correct_indexes))
        if not isinstance(self.type, QuestionType):
            object.__setattr__(self, "type", QuestionType(self.type))

        if not self.text or not self.text.strip():
            raise ValueError("Question text cannot be empty")
        if len(self.options) < 2:
            raise ValueError(f"Question needs at least 2 options, got {len(self.options)}")

        n = len(self.options)
        if self.type is QuestionType.SINGLE:
            if self.correct_index is None or not (0 <= self.correct_index < n):
                raise ValueError(
                    f"correct_index must be 0-{n - 1}: {self.correct_index!r}"
                )
            if self.correct_indexes:
                raise ValueError("Single-choice question cannot have correct_indexes")
        else:
            if not self.correct_indexes:
                raise ValueError("Multiple-choice question needs correct_indexes")
            bad = [i for i in self.correct_indexes if not (0 <= i < n)]
            if bad:
                raise ValueError(f"correct_indexes out of range 0-{n - 1}: {bad}")
            if self.correct_index is not None:
                raise ValueError("Multiple-choice question cannot have correct_index")

    @classmethod
    def single(cls, text: str, options: Sequence[str], correct_index: int) -> "Question":
        """Create a single-choice question."""
        return cls(text, QuestionType.SINGLE, tuple(options), correct_index=correct_index)

    @classmethod
    def multiple(
        cls, text: str, options: Sequence[str], correct_indexes: Sequence[int]
    ) -> "Question":
        """Create a multiple-choice question."""
        return cls(
            text, QuestionType.MULTIPLE, tuple(options), correct_indexes=tuple(correct_indexes)
        )

    @property
    def answer_indexes(self) -> tuple[int, ...]:
        """Correct option indexes for either question type."""
        if self.type is QuestionType.SINGLE:
            return (self.correct_index,)  # type: ignore[return-value]
        return self.correct_indexes

    @cached_property
    def dedup_key(self) -> str:
        """
        Normalized composite of text and options.

        Two questions re-extracted from an overlap page produce the same key
        even when whitespace or letter case differs.
        """
        options = KEY_OPTION_SEPARATOR.join(normalize_text(o) for o in self.options)
        return f"{normalize_text(self.text)}{KEY_TEXT_SEPARATOR}{options}"

    def preview(self, length: int = 50) -> str:
        """Shortened question text for log lines."""
        if len(self.text) <= length:
            return self.text
        return self.text[:length] + "..."
