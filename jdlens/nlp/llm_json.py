"""Utilities for robustly extracting JSON from LLM responses."""

from __future__ import annotations
import json
import re
from typing import Any

_JSON_BLOCK = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)


def _strip_code_fences(text: str) -> str:
    """Remove surrounding ```...``` fences (with or without 'json') if present."""
    t = text.strip()
    if t.startswith("```") and t.endswith("```"):
        t = re.sub(r"^```[A-Za-z0-9_-]*\s*", "", t, flags=re.DOTALL)
        t = re.sub(r"\s*```$", "", t, flags=re.DOTALL)
    return t.strip()


def extract_json(text: str | None) -> Any:
    """
    Extract and parse the first JSON object/array from an LLM response.
    Handles code fences and leading/trailing prose.
    Returns None when nothing parses.
    """
    if not text:
        return None
    t = _strip_code_fences(text)

    try:
        return json.loads(t)
    except json.JSONDecodeError:
        pass

    m = _JSON_BLOCK.search(t)
    if not m:
        return None
    try:
        return json.loads(m.group(1))
    except json.JSONDecodeError:
        return None
