"""
Utils Package

Serialization helpers for question output.
"""

from .serialization import (
    serialize_question,
    deserialize_question,
    serialize_merged,
    deserialize_merged,
    to_answer_key,
    load_questions_jsonl,
    save_questions_jsonl,
)

__all__ = [
    "serialize_question",
    "deserialize_question",
    "serialize_merged",
    "deserialize_merged",
    "to_answer_key",
    "load_questions_jsonl",
    "save_questions_jsonl",
]
