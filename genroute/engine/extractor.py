# genroute/engine/extractor.py
"""
Recover a JSON value from free-form model output.

Models asked for "strict JSON" still wrap it in markdown fences, lead with
a sentence of prose, or trail off into commentary. ``extract_json`` copes
with all of these:

1. Try to parse the whole text.
2. Otherwise scan for the first ``{`` or ``[`` that is not inside a quoted
   string, follow it to its matching close with a single depth counter
   (tracking string state and backslash escapes so braces inside string
   literals are ignored), and parse that slice.
3. If no balanced region exists or the slice does not parse, return None.

It never raises.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

_PAIRS = {"{": "}", "[": "]"}


def _balanced_span(text: str) -> tuple[int, int] | None:
    """Return (start, end) of the first balanced object/array, end exclusive."""
    start = -1
    open_char = close_char = ""
    depth = 0
    in_string = False
    escaped = False

    for i, char in enumerate(text):
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if start == -1:
            if char in _PAIRS:
                start = i
                open_char, close_char = char, _PAIRS[char]
                depth = 1
            continue

        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return start, i + 1
    return None


def extract_json(text: str | None) -> Any | None:
    """
    Parse *text* as JSON, or the first balanced ``{...}`` / ``[...]`` region
    inside it. Returns None when nothing parses.
    """
    if not text:
        return None
    # ValueError covers JSONDecodeError and the int digit limit; very deep
    # nesting surfaces as RecursionError.
    try:
        return json.loads(text)
    except (ValueError, TypeError, RecursionError):
        pass

    span = _balanced_span(text)
    if span is None:
        return None
    start, end = span
    try:
        return json.loads(text[start:end])
    except (ValueError, RecursionError):
        logger.warning("Failed to parse JSON region: %s...", text[start : start + 100])
        return None
