"""
Module: extractor.parsing

Purpose:
    Locates the question array in free-form generator replies. Replies may
    wrap the JSON in prose or markdown fences, so the first balanced
    top-level array literal that decodes as JSON is taken.

Key Functions:
    - find_json_array(): Decode the first top-level JSON array in text

Used By:
    - extractor.client: Parses each attempt's reply
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, List, Optional, Tuple

from pdf_quiz_toolkit.errors import ParseError

logger = logging.getLogger(__name__)


def _scan_array(text: str, start: int) -> Optional[int]:
    """
    Find the index just past the bracket closing the array at `start`.

    Brackets inside JSON string literals are ignored. Returns None when the
    array is never closed.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def _candidates(text: str) -> Iterator[Tuple[int, Optional[int]]]:
    """Yield (start, end) for every "[" in text; end is None if never closed."""
    pos = text.find("[")
    while pos != -1:
        yield pos, _scan_array(text, pos)
        pos = text.find("[", pos + 1)


def find_json_array(text: str) -> List[Any]:
    """
    Decode the first balanced top-level JSON array in `text`.

    Bracketed prose such as "[note]" or a stray "[1-3" that is not valid
    JSON is skipped and scanning resumes at the next bracket.

    Args:
        text: Free-form reply from the generation service.

    Returns:
        The decoded list (possibly empty).

    Raises:
        ParseError: If no top-level array decodes as JSON.

    Example:
        >>> find_json_array('Here you go:\\n```json\\n[{"a": 1}]\\n```')
        [{'a': 1}]
    """
    if not text:
        raise ParseError("Empty response text", raw_text="")

    last_error = "No valid JSON array found in response"
    unterminated = False
    for start, end in _candidates(text):
        if end is None:
            unterminated = True
            continue
        try:
            value = json.loads(text[start:end])
        except json.JSONDecodeError as e:
            logger.debug(f"Skipping non-JSON bracketed span at {start}: {e}")
            last_error = f"No valid JSON array found in response ({e.msg})"
            continue
        if isinstance(value, list):
            return value

    if unterminated:
        last_error = "Unterminated JSON array in response"
    raise ParseError(last_error, raw_text=text)
