"""
Core Models Package

Immutable, validated data models shared by the extraction pipeline.

All models in this package are frozen dataclasses. This ensures:
1. No accidental mutation while chunks are processed concurrently
2. Safe to pass between worker threads
3. Can be used as dict keys or in sets
"""

from .questions import Question, QuestionType, normalize_text
from .chunks import (
    Chunk,
    ChunkResult,
    MergedQuestion,
    PageRange,
    Provenance,
    SourceDocument,
)

__all__ = [
    "Question",
    "QuestionType",
    "normalize_text",
    "Chunk",
    "ChunkResult",
    "MergedQuestion",
    "PageRange",
    "Provenance",
    "SourceDocument",
]
