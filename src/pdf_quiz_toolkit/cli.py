"""
Command-line entry point.

Extracts quiz questions from a PDF and writes them as JSONL:

    GEMINI_KEYS=key1,key2 pdf-quiz-extract notes.pdf -o questions.jsonl

Exit codes: 0 success, 1 extraction failure, 2 configuration/input error.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pdf_quiz_toolkit import __version__
from pdf_quiz_toolkit.core.utils.serialization import save_questions_jsonl
from pdf_quiz_toolkit.errors import (
    ChunkSplitError,
    ConfigurationError,
    QuizExtractionError,
    to_user_message,
)
from pdf_quiz_toolkit.extractor import (
    CredentialPool,
    ExtractionConfig,
    GeminiGenerator,
    PipelineOrchestrator,
    ProgressEvent,
    generate_quiz_title,
)
from pdf_quiz_toolkit.extractor.timing import TimingLog
from pdf_quiz_toolkit.extractor.utils.pdf import extract_text, load_document

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-quiz-extract",
        description="Extract deduplicated quiz questions from a PDF.",
    )
    parser.add_argument("pdf", type=Path, help="Input PDF file")
    parser.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output JSONL path (default: <pdf name>.questions.jsonl)",
    )
    parser.add_argument(
        "--max-concurrent", type=int, default=None,
        help="Maximum chunks extracted at once",
    )
    parser.add_argument(
        "--no-adjacent-pass", action="store_true",
        help="Skip the adjacent-duplicate pass after merging",
    )
    parser.add_argument(
        "--allow-empty-chunks", action="store_true",
        help="Accept chunks for which the service returns no questions",
    )
    parser.add_argument(
        "--title", action="store_true",
        help="Also generate a quiz title and print it",
    )
    parser.add_argument(
        "--timing", type=Path, default=None,
        help="Merge timing metrics into this JSON file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _print_progress(event: ProgressEvent) -> None:
    if event.total_chunks:
        print(f"[{event.completed_chunks}/{event.total_chunks}] {event.message}", file=sys.stderr)
    else:
        print(event.message, file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.max_concurrent is not None:
        overrides["max_concurrent_chunks"] = args.max_concurrent
    if args.no_adjacent_pass:
        overrides["collapse_adjacent"] = False
    if args.allow_empty_chunks:
        overrides["allow_empty_chunks"] = True

    try:
        config = ExtractionConfig.from_env(**overrides)
        pool = CredentialPool.from_env()
        document = load_document(args.pdf)
    except (ConfigurationError, ChunkSplitError, FileNotFoundError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2

    generator = GeminiGenerator(config.model_name)
    timing_log = TimingLog()
    orchestrator = PipelineOrchestrator(
        document,
        generator,
        pool,
        config=config,
        progress_callback=_print_progress,
        timing_log=timing_log,
    )

    try:
        result = orchestrator.run()
    except QuizExtractionError as e:
        print(to_user_message(e), file=sys.stderr)
        return 1
    finally:
        if args.timing is not None:
            timing_log.save(args.timing)

    output = args.output or args.pdf.with_suffix(".questions.jsonl")
    written = save_questions_jsonl(result.questions, output)
    summary = {
        "document": document.name,
        "pages": result.total_pages,
        "chunks": result.chunk_count,
        "questions": written,
        "duplicates_skipped": result.duplicates_skipped,
        "output": str(output),
    }

    if args.title:
        sample = extract_text(document.content)
        summary["title"] = generate_quiz_title(generator, pool.lease(), sample)

    print(json.dumps(summary, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
