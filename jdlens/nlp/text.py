# jdlens/nlp/text.py
from __future__ import annotations
import re

_NON_WORD = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")

def normalize_skill_name(name: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace, trim."""
    stripped = _NON_WORD.sub("", (name or "").lower())
    return _SPACES.sub(" ", stripped).strip()
