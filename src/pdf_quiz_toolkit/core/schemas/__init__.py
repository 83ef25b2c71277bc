"""
Schemas Package

JSON schema definitions and validation of extracted question items.
"""

from pdf_quiz_toolkit.errors import SchemaValidationError
from .validator import validate_question_item, validate_question_items

__all__ = [
    "validate_question_item",
    "validate_question_items",
    "SchemaValidationError",
]
