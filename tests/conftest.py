import json
import sys
import threading
from pathlib import Path
from typing import Callable, List, Sequence, Union

import pytest

# Add src to sys.path so we can import pdf_quiz_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())


def make_pdf_bytes(page_count: int, label: str = "Page") -> bytes:
    """Build a PDF whose page N carries the text '<label> N'."""
    import fitz

    doc = fitz.open()
    try:
        for n in range(1, page_count + 1):
            page = doc.new_page()
            page.insert_text((72, 72), f"{label} {n}")
        return doc.tobytes()
    finally:
        doc.close()


def page_texts(pdf_bytes: bytes) -> List[str]:
    """Stripped text of every page of a PDF."""
    import fitz

    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text("text").strip() for page in doc]


def single_item(text: str, options: Sequence[str], correct: int) -> dict:
    return {"question": text, "type": "single", "options": list(options), "correctIndex": correct}


def multiple_item(text: str, options: Sequence[str], correct: Sequence[int]) -> dict:
    return {
        "question": text,
        "type": "multiple",
        "options": list(options),
        "correctIndexes": list(correct),
    }


Reply = Union[str, Exception]


class ScriptedGenerator:
    """
    Fake generation service.

    Replies are consumed in call order; an Exception reply is raised.
    Every call is recorded as (content, instructions, credential).
    """

    def __init__(self, replies: Sequence[Reply] = ()):
        self._replies = list(replies)
        self.calls: list = []
        self._lock = threading.Lock()

    def generate(self, content: bytes, instructions: str, credential: str) -> str:
        with self._lock:
            self.calls.append((content, instructions, credential))
            if not self._replies:
                raise RuntimeError("No scripted reply left")
            reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def credentials_used(self) -> List[str]:
        return [c for _, _, c in self.calls]


class PageAwareGenerator:
    """
    Fake generation service that answers from the chunk's own pages.

    `questions_for_page(n)` returns the raw items "found" on page n; the
    reply is the JSON array of items for every page in the chunk.
    """

    def __init__(self, questions_for_page: Callable[[int], List[dict]], fail_pages=()):
        self.questions_for_page = questions_for_page
        self.fail_pages = set(fail_pages)
        self.calls: list = []
        self._lock = threading.Lock()

    def generate(self, content: bytes, instructions: str, credential: str) -> str:
        # PyMuPDF is not thread-safe; workers parse one at a time
        with self._lock:
            pages = [int(t.split()[-1]) for t in page_texts(content)]
            self.calls.append((pages, credential))
        if self.fail_pages & set(pages):
            raise ConnectionError(f"Service unavailable for pages {pages}")
        items = []
        for n in pages:
            items.extend(self.questions_for_page(n))
        return "Here are the questions:\n```json\n" + json.dumps(items) + "\n```"


@pytest.fixture
def make_pdf():
    """Factory fixture: make_pdf(page_count) -> PDF bytes."""
    return make_pdf_bytes


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays: List[float] = []

    def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays  # type: ignore[attr-defined]
    return sleep


@pytest.fixture
def sample_items():
    """Two valid raw question items."""
    return [
        single_item("What is 2+2?", ["3", "4", "5", "6"], 1),
        multiple_item("Which are primes?", ["2", "4", "5", "9"], [0, 2]),
    ]


@pytest.fixture
def pdf_page_texts():
    """Helper fixture: pdf_page_texts(pdf_bytes) -> list of page texts."""
    return page_texts


@pytest.fixture
def scripted_generator():
    """Factory fixture: scripted_generator(replies) -> ScriptedGenerator."""
    return ScriptedGenerator


@pytest.fixture
def page_aware_generator():
    """Factory fixture: page_aware_generator(questions_for_page, fail_pages=())."""
    return PageAwareGenerator


@pytest.fixture
def single():
    """Factory fixture for raw single-choice items."""
    return single_item


@pytest.fixture
def multiple():
    """Factory fixture for raw multiple-choice items."""
    return multiple_item
