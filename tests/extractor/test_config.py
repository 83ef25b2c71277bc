"""
Unit Tests for ExtractionConfig.
"""

import pytest

from pdf_quiz_toolkit.errors import ConfigurationError
from pdf_quiz_toolkit.extractor.config import ExtractionConfig


class TestExtractionConfig:
    """Tests for defaults and validation."""

    def test_defaults(self):
        config = ExtractionConfig()

        assert config.chunk_size == 10
        assert config.overlap == 1
        assert config.max_concurrent_chunks == 3
        assert config.max_attempts_cap == 3
        assert config.retry_backoff_seconds == 1.0
        assert config.collapse_adjacent is True
        assert config.allow_empty_chunks is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"chunk_size": 0},
            {"overlap": -1},
            {"chunk_size": 5, "overlap": 5},
            {"max_concurrent_chunks": 0},
            {"max_attempts_cap": 0},
            {"retry_backoff_seconds": -0.1},
            {"instructions": "  "},
        ],
    )
    def test_create_when_invalid_then_raises(self, kwargs):
        with pytest.raises(ValueError):
            ExtractionConfig(**kwargs)

    def test_with_overrides_when_changed_then_copy(self):
        config = ExtractionConfig()

        changed = config.with_overrides(max_concurrent_chunks=8)

        assert changed.max_concurrent_chunks == 8
        assert config.max_concurrent_chunks == 3


class TestFromEnv:
    """Tests for ExtractionConfig.from_env()."""

    def test_from_env_when_empty_then_defaults(self):
        assert ExtractionConfig.from_env({}) == ExtractionConfig()

    def test_from_env_when_variables_set_then_applied(self):
        config = ExtractionConfig.from_env({
            "QUIZ_CHUNK_SIZE": "20",
            "QUIZ_CHUNK_OVERLAP": "2",
            "QUIZ_MAX_CONCURRENT_CHUNKS": "5",
            "QUIZ_RETRY_BACKOFF_SECONDS": "0.25",
            "GEMINI_MODEL": "gemini-test",
        })

        assert (config.chunk_size, config.overlap) == (20, 2)
        assert config.max_concurrent_chunks == 5
        assert config.retry_backoff_seconds == 0.25
        assert config.model_name == "gemini-test"

    def test_from_env_when_overrides_then_win(self):
        config = ExtractionConfig.from_env({"QUIZ_CHUNK_SIZE": "20"}, chunk_size=12)

        assert config.chunk_size == 12

    def test_from_env_when_not_a_number_then_configuration_error(self):
        with pytest.raises(ConfigurationError, match="QUIZ_CHUNK_SIZE"):
            ExtractionConfig.from_env({"QUIZ_CHUNK_SIZE": "ten"})

    def test_from_env_when_out_of_range_then_configuration_error(self):
        with pytest.raises(ConfigurationError, match="overlap"):
            ExtractionConfig.from_env({"QUIZ_CHUNK_SIZE": "4", "QUIZ_CHUNK_OVERLAP": "4"})
