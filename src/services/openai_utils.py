"""Utilities for working with OpenAI Responses API payloads."""

from __future__ import annotations

import re
from typing import List


_FENCE_PATTERNS = (
    re.compile(r"^```json\s*(.*?)\s*```$", re.DOTALL),
    re.compile(r"^```\s*(.*?)\s*```$", re.DOTALL),
    re.compile(r"^`(.*?)`$", re.DOTALL),
)


def extract_output_text(response: object) -> str:
    """Best-effort extraction of text from an OpenAI Responses result."""
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    output = getattr(response, "output", None)
    if not isinstance(output, list):
        return ""

    collected: List[str] = []
    for item in output:
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) != "output_text":
                continue
            text = getattr(part, "text", None)
            if isinstance(text, str) and text:
                collected.append(text)
    return "\n".join(collected)


def strip_code_fences(text: str) -> str:
    """Remove a Markdown code fence (```json, ``` or `) wrapping a JSON body."""
    cleaned = text.strip()
    for pattern in _FENCE_PATTERNS:
        match = pattern.match(cleaned)
        if match:
            return match.group(1).strip()
    return cleaned
