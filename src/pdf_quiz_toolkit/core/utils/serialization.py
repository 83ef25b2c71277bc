"""
Serialization Utilities

Converts Question and MergedQuestion models to and from the JSON wire
format used by the generation service and downstream consumers.

Wire format (camelCase, as returned by the generation service):

    {"question": "...", "type": "single", "options": [...], "correctIndex": 2}
    {"question": "...", "type": "multiple", "options": [...], "correctIndexes": [0, 2]}

Merged questions additionally carry "sourceChunk" and "sourcePages".
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from pdf_quiz_toolkit.errors import SchemaValidationError
from ..models.chunks import MergedQuestion, Provenance
from ..models.questions import Question, QuestionType
from ..schemas.validator import validate_question_item


# ─────────────────────────────────────────────────────────────────────────────
# Question Serialization
# ─────────────────────────────────────────────────────────────────────────────

def serialize_question(question: Question) -> dict[str, Any]:
    """
    Serialize a Question to a wire-format dictionary.

    Only the answer field relevant to the question type is emitted.
    """
    data: dict[str, Any] = {
        "question": question.text,
        "type": question.type.value,
        "options": list(question.options),
    }
    if question.type is QuestionType.SINGLE:
        data["correctIndex"] = question.correct_index
    else:
        data["correctIndexes"] = list(question.correct_indexes)
    return data


def deserialize_question(data: dict[str, Any]) -> Question:
    """
    Deserialize a Question from a wire-format dictionary.

    Raises:
        SchemaValidationError: If data violates the question contract.
    """
    return validate_question_item(data)


def serialize_merged(item: MergedQuestion) -> dict[str, Any]:
    """Serialize a merged question including its provenance tags."""
    data = serialize_question(item.question)
    data["sourceChunk"] = item.provenance.chunk_index
    data["sourcePages"] = item.provenance.pages
    return data


def deserialize_merged(data: dict[str, Any]) -> MergedQuestion:
    """
    Deserialize a merged question written by serialize_merged().

    Raises:
        SchemaValidationError: If the question or provenance is malformed.
    """
    question = validate_question_item(data)
    try:
        start, end = (int(p) for p in str(data["sourcePages"]).split("-", 1))
        provenance = Provenance(int(data["sourceChunk"]), start, end)
    except (KeyError, ValueError) as e:
        raise SchemaValidationError(
            f"Invalid provenance: {e}",
            path="sourcePages",
        ) from e
    return MergedQuestion(question, provenance)


def to_answer_key(question: Question) -> int:
    """
    Legacy single answer index for a question.

    Single-choice questions return their correct index; multiple-choice
    questions return the first correct index.
    """
    return question.answer_indexes[0]


# ─────────────────────────────────────────────────────────────────────────────
# JSONL Utilities
# ─────────────────────────────────────────────────────────────────────────────

def save_questions_jsonl(items: Iterable[MergedQuestion], path: Path) -> int:
    """
    Save merged questions to a JSONL file, one object per line.

    Args:
        items: Merged questions in output order.
        path: Output path (parent directories are created).

    Returns:
        Number of lines written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for item in items:
            f.write(json.dumps(serialize_merged(item), ensure_ascii=False))
            f.write("\n")
            count += 1
    return count


def load_questions_jsonl(path: Path) -> list[MergedQuestion]:
    """
    Load merged questions from a JSONL file.

    Raises:
        FileNotFoundError: If file doesn't exist
        SchemaValidationError: If any line is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Questions file not found: {path}")

    items = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                items.append(deserialize_merged(json.loads(line)))
            except (json.JSONDecodeError, SchemaValidationError) as e:
                raise SchemaValidationError(
                    f"Error parsing line {line_no}: {e}",
                    path=str(path),
                    errors=[str(e)],
                ) from e

    return items
