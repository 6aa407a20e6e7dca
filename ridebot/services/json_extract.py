"""
Lenient JSON extraction from free-form model output.

Language models are asked for "ONLY valid JSON" but regularly wrap it in
prose or Markdown code fences. This module finds the first decodable JSON
object in such text.
"""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_decoder = json.JSONDecoder()


def _candidates(text: str) -> list[str]:
    """Fenced blocks first, then the raw text."""
    blocks = [match.group(1) for match in _FENCE_RE.finditer(text)]
    return [*blocks, text]


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """
    Return the first JSON object embedded in ``text``.

    Tries ``raw_decode`` at every ``{`` so that leading prose, trailing
    commentary and stray braces before the payload are all tolerated.

    Args:
        text: Model output

    Returns:
        The decoded object, or None if no object could be decoded
    """
    if not text:
        return None

    for candidate in _candidates(text):
        start = candidate.find("{")
        while start != -1:
            try:
                value, _ = _decoder.raw_decode(candidate, start)
            except json.JSONDecodeError:
                start = candidate.find("{", start + 1)
                continue
            # Decoding from "{" can only produce an object
            return value

    return None
