"""
Module: extractor.generation

Purpose:
    Boundary to the external generation service. Defines the narrow
    generate() contract the extraction client depends on, the default
    question-extraction prompt, and a Gemini-backed implementation.

Key Classes:
    - QuestionGenerator: Protocol for generate(content, instructions, credential) -> text
    - GeminiGenerator: google-genai implementation sending the PDF inline

Key Functions:
    - generate_quiz_title(): Short quiz title from document text

Dependencies:
    - google-genai: Gemini API client

Used By:
    - extractor.client: Calls generate() once per attempt
    - cli: Builds a GeminiGenerator
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Protocol, runtime_checkable

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-2.0-flash"
PDF_MIME_TYPE = "application/pdf"
FALLBACK_TITLE = "Generated Quiz"

DEFAULT_INSTRUCTIONS = """\
Extract and generate questions from the provided content. Create both single-choice and multiple-choice questions when appropriate.
Return ONLY a valid JSON array in this exact format:
[
    {
        "question": "What is the capital of France?",
        "type": "single",
        "options": ["London", "Berlin", "Paris", "Madrid"],
        "correctIndex": 2
    },
    {
        "question": "Which of the following are programming languages?",
        "type": "multiple",
        "options": ["JavaScript", "HTML", "Python", "CSS"],
        "correctIndexes": [0, 2]
    }
]
Requirements:
- Extract questions exactly as written, or create logical questions from the content
- Use "type": "single" for questions with one correct answer
- Use "type": "multiple" for questions where multiple answers are correct
- For single choice: use "correctIndex" (0-based index into options)
- For multiple choice: use "correctIndexes" (array of 0-based indexes into options)
- Extract questions and options exactly as written in the source
- Questions must be clearly stated and unambiguous
- Return only the JSON array, no additional explanation or text
"""

TITLE_INSTRUCTIONS = """\
Generate a concise, descriptive title for a quiz based on this content.
The title should be:
- 3-8 words long
- Clear and specific
- Suitable for students

Content: {content}...

Return only the title, no additional text.
"""


@runtime_checkable
class QuestionGenerator(Protocol):
    """
    Contract for the external generation service.

    Implementations may fail transiently; any exception is treated by the
    caller as a failed attempt.
    """

    def generate(self, content: bytes, instructions: str, credential: str) -> str:
        """Send content plus instructions, return the free-form reply text."""
        ...


class GeminiGenerator:
    """
    Gemini implementation of QuestionGenerator.

    Sends the chunk PDF as inline data followed by the instructions. One
    client is kept per credential so concurrent attempts with different
    keys never share configuration.

    Example:
        >>> gen = GeminiGenerator()
        >>> text = gen.generate(pdf_bytes, DEFAULT_INSTRUCTIONS, api_key)
    """

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME, *, mime_type: str = PDF_MIME_TYPE):
        self.model_name = model_name
        self.mime_type = mime_type
        self._clients: Dict[str, genai.Client] = {}
        self._lock = threading.Lock()

    def _client_for(self, credential: str) -> genai.Client:
        with self._lock:
            client = self._clients.get(credential)
            if client is None:
                client = genai.Client(api_key=credential)
                self._clients[credential] = client
            return client

    def generate(self, content: bytes, instructions: str, credential: str) -> str:
        client = self._client_for(credential)
        parts = [instructions]
        if content:
            parts.append(types.Part.from_bytes(data=content, mime_type=self.mime_type))

        response = client.models.generate_content(model=self.model_name, contents=parts)
        text = response.text
        if not text:
            raise RuntimeError("Generation service returned an empty response")
        return text


def generate_quiz_title(generator: QuestionGenerator, credential: str, content: str) -> str:
    """
    Ask the generator for a short quiz title.

    Only the first 500 characters of `content` are sent. Any failure or an
    empty reply falls back to "Generated Quiz".
    """
    prompt = TITLE_INSTRUCTIONS.format(content=content[:500])
    try:
        title = generator.generate(b"", prompt, credential).strip()
    except Exception as e:
        logger.warning(f"Title generation failed, using fallback: {e}")
        return FALLBACK_TITLE
    # Models sometimes wrap the title in quotes
    title = title.strip('"').strip("'").strip()
    return title or FALLBACK_TITLE
