"""
Unit Tests for question validation.

Tests the schema layer and index range checks on raw question items.
"""

import pytest

from pdf_quiz_toolkit.core.models import QuestionType
from pdf_quiz_toolkit.core.schemas import (
    SchemaValidationError,
    validate_question_item,
    validate_question_items,
)


class TestValidateQuestionItem:
    """Tests for validate_question_item()."""

    def test_validate_when_single_valid_then_question(self, single):
        q = validate_question_item(single("What is 2+2?", ["3", "4", "5", "6"], 1))

        assert q.type is QuestionType.SINGLE
        assert q.correct_index == 1

    def test_validate_when_multiple_valid_then_question(self, multiple):
        q = validate_question_item(multiple("Primes?", ["2", "4", "5"], [0, 2]))

        assert q.type is QuestionType.MULTIPLE
        assert q.correct_indexes == (0, 2)

    def test_validate_when_extra_fields_then_ignored(self, single):
        item = single("Q?", ["a", "b"], 0)
        item["explanation"] = "because"

        q = validate_question_item(item)

        assert q.text == "Q?"

    def test_validate_when_missing_options_then_raises(self):
        with pytest.raises(SchemaValidationError) as exc:
            validate_question_item({"question": "Q?", "type": "single", "correctIndex": 0})

        assert "'options' is a required property" in str(exc.value)

    def test_validate_when_unknown_type_then_raises(self):
        item = {"question": "Q?", "type": "truefalse", "options": ["a", "b"], "correctIndex": 0}

        with pytest.raises(SchemaValidationError) as exc:
            validate_question_item(item)

        assert exc.value.path == "type"

    def test_validate_when_single_without_correct_index_then_raises(self):
        item = {"question": "Q?", "type": "single", "options": ["a", "b"]}

        with pytest.raises(SchemaValidationError, match="correctIndex"):
            validate_question_item(item)

    def test_validate_when_multiple_without_correct_indexes_then_raises(self):
        item = {"question": "Q?", "type": "multiple", "options": ["a", "b"], "correctIndex": 0}

        with pytest.raises(SchemaValidationError, match="correctIndexes"):
            validate_question_item(item)

    def test_validate_when_blank_question_then_raises(self, single):
        with pytest.raises(SchemaValidationError) as exc:
            validate_question_item(single("   ", ["a", "b"], 0))

        assert exc.value.path == "question"

    def test_validate_when_non_string_option_then_raises(self):
        item = {"question": "Q?", "type": "single", "options": ["a", 2], "correctIndex": 0}

        with pytest.raises(SchemaValidationError) as exc:
            validate_question_item(item)

        assert exc.value.path == "options.1"

    def test_validate_when_not_an_object_then_raises(self):
        with pytest.raises(SchemaValidationError, match="position 1"):
            validate_question_item("just text")

    def test_validate_when_correct_index_out_of_range_then_raises(self, single):
        """correctIndex 5 over four options is rejected."""
        with pytest.raises(SchemaValidationError) as exc:
            validate_question_item(single("Q?", ["a", "b", "c", "d"], 5), position=2)

        assert exc.value.position == 2
        assert exc.value.path == "correctIndex"
        assert "position 3" in str(exc.value)
        assert "must be 0-3" in str(exc.value)

    def test_validate_when_correct_indexes_out_of_range_then_raises(self, multiple):
        with pytest.raises(SchemaValidationError, match=r"correctIndexes \[4\] must be 0-2"):
            validate_question_item(multiple("Q?", ["a", "b", "c"], [0, 4]))

    def test_validate_when_errors_then_retryable(self, single):
        with pytest.raises(SchemaValidationError) as exc:
            validate_question_item(single("Q?", ["a"], 0))

        assert exc.value.retryable is True


class TestValidateQuestionItems:
    """Tests for batch validation."""

    def test_validate_items_when_all_valid_then_in_order(self, sample_items):
        questions = validate_question_items(sample_items)

        assert [q.text for q in questions] == ["What is 2+2?", "Which are primes?"]

    def test_validate_items_when_empty_then_empty(self):
        assert validate_question_items([]) == []

    def test_validate_items_when_one_bad_then_whole_batch_rejected(self, sample_items, single):
        """A single bad item fails the batch with its position."""
        # Arrange
        items = sample_items + [single("Bad", ["a", "b"], 7)] + sample_items

        # Act / Assert
        with pytest.raises(SchemaValidationError) as exc:
            validate_question_items(items)

        assert exc.value.position == 2
