"""
Schema Validation Utilities

Validates question items returned by the generation service before they
are turned into Question models.

Two layers:
- Structural checks against question.schema.json (jsonschema)
- Index range checks the schema cannot express (index < len(options))

A batch is atomic: the first bad item fails the whole batch with
SchemaValidationError naming its position. Nothing is partially accepted.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

import jsonschema

from pdf_quiz_toolkit.errors import SchemaValidationError
from ..models.questions import Question, QuestionType

logger = logging.getLogger(__name__)

# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}
_VALIDATORS: dict[str, jsonschema.Draft7Validator] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


def _get_validator(name: str) -> jsonschema.Draft7Validator:
    if name not in _VALIDATORS:
        schema = _load_schema(name)
        jsonschema.Draft7Validator.check_schema(schema)
        _VALIDATORS[name] = jsonschema.Draft7Validator(schema)
    return _VALIDATORS[name]


def validate_question_item(data: Any, position: int = 0) -> Question:
    """
    Validate one raw question item and build the model.

    Args:
        data: Decoded JSON value for a single question.
        position: 0-based position of the item in its batch (for messages).

    Returns:
        Validated Question.

    Raises:
        SchemaValidationError: If the item violates the question contract.

    Example:
        >>> validate_question_item({
        ...     "question": "What is 2+2?",
        ...     "type": "single",
        ...     "options": ["3", "4", "5", "6"],
        ...     "correctIndex": 1,
        ... }).correct_index
        1
    """
    label = f"position {position + 1}"

    errors = sorted(
        _get_validator("question").iter_errors(data),
        key=lambda e: list(e.absolute_path),
    )
    if errors:
        first = errors[0]
        raise SchemaValidationError(
            f"Invalid question format at {label}: {first.message}",
            position=position,
            path=".".join(str(p) for p in first.absolute_path),
            errors=[e.message for e in errors],
        )

    options = [str(o) for o in data["options"]]
    n = len(options)
    q_type = QuestionType(data["type"])

    if q_type is QuestionType.SINGLE:
        correct = int(data["correctIndex"])
        if correct >= n:
            raise SchemaValidationError(
                f"Invalid single choice question at {label}: "
                f"correctIndex {correct} must be 0-{n - 1}",
                position=position,
                path="correctIndex",
            )
        return Question.single(data["question"], options, correct)

    indexes = [int(i) for i in data["correctIndexes"]]
    bad = [i for i in indexes if i >= n]
    if bad:
        raise SchemaValidationError(
            f"Invalid multiple choice question at {label}: "
            f"correctIndexes {bad} must be 0-{n - 1}",
            position=position,
            path="correctIndexes",
        )
    return Question.multiple(data["question"], options, indexes)


def validate_question_items(items: Sequence[Any]) -> list[Question]:
    """
    Validate a whole batch of raw question items.

    Fails fast on the first invalid item; a partially valid batch is
    rejected as a whole.

    Raises:
        SchemaValidationError: With `position` set to the first bad item.
    """
    questions = []
    for position, item in enumerate(items):
        questions.append(validate_question_item(item, position))
    logger.debug(f"Validated {len(questions)} question(s)")
    return questions
