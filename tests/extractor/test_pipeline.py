"""
Integration Tests for the extraction pipeline.

Runs real page splitting against generated PDFs with a fake generation
service that answers from the pages it receives.
"""

import logging
import threading
import time

import pytest

from pdf_quiz_toolkit.errors import ChunkSplitError, ExtractionExhaustedError
from pdf_quiz_toolkit.extractor import (
    CredentialPool,
    ExtractionConfig,
    PipelineOrchestrator,
    PipelineState,
    extract_questions_from_pdf,
)
from pdf_quiz_toolkit.extractor.utils.pdf import load_document


@pytest.fixture
def one_per_page(single):
    """One question printed on every page."""
    return lambda n: [single(f"Question on page {n}?", ["a", "b", "c", "d"], n % 4)]


@pytest.fixture
def pool():
    return CredentialPool(["k0", "k1", "k2"])


class TestPipelineSuccess:
    """Tests for a successful run."""

    def test_run_when_25_pages_then_unique_questions_in_page_order(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        """Overlap pages are extracted twice but kept once."""
        # Arrange
        document = load_document(make_pdf(25), name="notes.pdf")
        generator = page_aware_generator(one_per_page)
        orchestrator = PipelineOrchestrator(document, generator, pool, sleep=no_sleep)

        # Act
        result = orchestrator.run()

        # Assert
        assert orchestrator.state is PipelineState.DONE
        assert orchestrator.result is result
        assert result.chunk_count == 3
        assert result.total_pages == 25
        assert result.duplicates_skipped == 2
        assert [m.question.text for m in result.questions] == [
            f"Question on page {n}?" for n in range(1, 26)
        ]
        assert sorted(pages for pages, _ in generator.calls) == [
            list(range(1, 11)),
            list(range(10, 20)),
            list(range(19, 26)),
        ]

    def test_run_when_overlap_question_then_tagged_with_earlier_chunk(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        document = load_document(make_pdf(25))
        result = PipelineOrchestrator(
            document, page_aware_generator(one_per_page), pool, sleep=no_sleep
        ).run()

        tags = {m.question.text: m.provenance.pages for m in result.questions}
        assert tags["Question on page 10?"] == "1-10"
        assert tags["Question on page 19?"] == "10-19"
        assert tags["Question on page 25?"] == "19-25"

    def test_run_when_small_document_then_single_chunk_with_original_bytes(
        self, make_pdf, scripted_generator, sample_items, pool, no_sleep
    ):
        import json

        content = make_pdf(4)
        generator = scripted_generator([json.dumps(sample_items)])

        result = PipelineOrchestrator(
            load_document(content), generator, pool, sleep=no_sleep
        ).run()

        assert result.chunk_count == 1
        assert generator.calls[0][0] == content
        assert result.to_dicts()[0]["sourcePages"] == "1-4"

    def test_run_when_chunk_retried_then_result_unchanged(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        """A transient failure on one attempt does not change the output."""
        failures = {"left": 1}
        lock = threading.Lock()
        inner = page_aware_generator(one_per_page)

        class FlakyOnce:
            def generate(self, content, instructions, credential):
                with lock:
                    fail = failures["left"] > 0
                    failures["left"] -= 1
                if fail:
                    raise ConnectionError("503 Service Unavailable")
                return inner.generate(content, instructions, credential)

        result = PipelineOrchestrator(
            load_document(make_pdf(25)), FlakyOnce(), pool, sleep=no_sleep
        ).run()

        assert result.question_count == 25
        assert no_sleep.delays == [1.0]

    def test_run_when_limited_concurrency_then_bound_respected(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        # Arrange
        inner = page_aware_generator(one_per_page)
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}

        class Tracking:
            def generate(self, content, instructions, credential):
                with lock:
                    state["active"] += 1
                    state["peak"] = max(state["peak"], state["active"])
                try:
                    time.sleep(0.02)
                    return inner.generate(content, instructions, credential)
                finally:
                    with lock:
                        state["active"] -= 1

        config = ExtractionConfig(max_concurrent_chunks=2)

        # Act
        result = PipelineOrchestrator(
            load_document(make_pdf(46)), Tracking(), pool, config=config, sleep=no_sleep
        ).run()

        # Assert
        assert result.chunk_count == 5
        assert 1 <= state["peak"] <= 2

    def test_run_when_finished_then_timing_recorded(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        result = PipelineOrchestrator(
            load_document(make_pdf(25)), page_aware_generator(one_per_page), pool, sleep=no_sleep
        ).run()

        assert set(result.timing.run_timings) == {
            "total", "planning", "splitting", "extracting", "merging",
        }
        assert set(result.timing.chunk_timings) == {"chunk_0", "chunk_1", "chunk_2"}
        assert all("extract" in phases for phases in result.timing.chunk_timings.values())


class TestProgressEvents:
    """Tests for progress notifications."""

    def test_run_when_callback_then_events_in_stage_order(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        events = []

        PipelineOrchestrator(
            load_document(make_pdf(25)),
            page_aware_generator(one_per_page),
            pool,
            progress_callback=events.append,
            sleep=no_sleep,
        ).run()

        assert [e.stage for e in events] == [
            "planning", "extracting", "extracting", "extracting", "merging", "completed",
        ]
        assert [e.completed_chunks for e in events if e.stage == "extracting"] == [1, 2, 3]
        assert all(e.total_chunks == 3 for e in events)
        assert "25 unique questions" in events[-1].message

    def test_run_when_callback_raises_then_run_fails(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        class Boom(Exception):
            pass

        def callback(event):
            if event.stage == "planning":
                raise Boom("observer failed")

        generator = page_aware_generator(one_per_page)
        orchestrator = PipelineOrchestrator(
            load_document(make_pdf(25)), generator, pool,
            progress_callback=callback, sleep=no_sleep,
        )

        with pytest.raises(Boom):
            orchestrator.run()

        assert orchestrator.state is PipelineState.FAILED
        assert generator.calls == []


class TestPipelineFailure:
    """Tests for the failure path."""

    def test_run_when_chunk_exhausts_attempts_then_failed_without_result(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        # Arrange
        events = []
        generator = page_aware_generator(one_per_page, fail_pages={15})
        orchestrator = PipelineOrchestrator(
            load_document(make_pdf(25)), generator, pool,
            progress_callback=events.append, sleep=no_sleep,
        )

        # Act
        with pytest.raises(ExtractionExhaustedError) as exc:
            orchestrator.run()

        # Assert
        assert exc.value.chunk_index == 1
        assert exc.value.attempts == 3
        assert orchestrator.state is PipelineState.FAILED
        assert orchestrator.error is exc.value
        assert orchestrator.result is None
        assert events[-1].stage == "failed"
        assert "completed" not in [e.stage for e in events]

    def test_run_when_callback_raises_on_failed_event_then_original_error_kept(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep, caplog
    ):
        def callback(event):
            if event.stage == "failed":
                raise ValueError("observer failed")

        generator = page_aware_generator(one_per_page, fail_pages={15})
        orchestrator = PipelineOrchestrator(
            load_document(make_pdf(25)), generator, pool,
            progress_callback=callback, sleep=no_sleep,
        )

        with caplog.at_level(logging.ERROR, logger="pdf_quiz_toolkit.extractor.pipeline"):
            with pytest.raises(ExtractionExhaustedError) as exc:
                orchestrator.run()

        assert orchestrator.state is PipelineState.FAILED
        assert orchestrator.error is exc.value
        assert "observer failed" in caplog.text

    def test_run_when_first_chunk_fails_then_queued_chunks_cancelled(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        """With one worker, chunks queued behind the failure never run."""
        generator = page_aware_generator(one_per_page, fail_pages={2})
        config = ExtractionConfig(max_concurrent_chunks=1)
        orchestrator = PipelineOrchestrator(
            load_document(make_pdf(37)), generator, pool, config=config, sleep=no_sleep
        )

        with pytest.raises(ExtractionExhaustedError):
            orchestrator.run()

        started = {pages[0] for pages, _ in generator.calls}
        # The worker may pick up the next chunk before cancellation lands,
        # never the ones after it
        assert started <= {1, 10}
        assert [pages[0] for pages, _ in generator.calls].count(1) == 3

    def test_run_when_called_twice_then_raises(
        self, make_pdf, page_aware_generator, one_per_page, pool, no_sleep
    ):
        orchestrator = PipelineOrchestrator(
            load_document(make_pdf(3)), page_aware_generator(one_per_page), pool, sleep=no_sleep
        )
        orchestrator.run()

        with pytest.raises(RuntimeError, match="single-use"):
            orchestrator.run()


class TestExtractQuestionsFromPdf:
    """Tests for the extract_questions_from_pdf() entry point."""

    def test_extract_when_path_then_result_named(
        self, tmp_path, make_pdf, page_aware_generator, one_per_page, pool
    ):
        path = tmp_path / "biology.pdf"
        path.write_bytes(make_pdf(12))

        result = extract_questions_from_pdf(path, page_aware_generator(one_per_page), pool)

        assert result.document_name == "biology.pdf"
        assert result.question_count == 12

    def test_extract_when_not_a_pdf_then_split_error(self, page_aware_generator, one_per_page, pool):
        with pytest.raises(ChunkSplitError):
            extract_questions_from_pdf(b"not a pdf", page_aware_generator(one_per_page), pool)
