"""
PDF Quiz Toolkit Core Package

Shared data models, schema validation and serialization used by the
extraction pipeline. Models here are the single source of truth for
question and chunk shapes.
"""

from .models import (
    Chunk,
    ChunkResult,
    MergedQuestion,
    PageRange,
    Provenance,
    Question,
    QuestionType,
    SourceDocument,
)

__all__ = [
    "Chunk",
    "ChunkResult",
    "MergedQuestion",
    "PageRange",
    "Provenance",
    "Question",
    "QuestionType",
    "SourceDocument",
]
