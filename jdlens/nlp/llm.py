# jdlens/nlp/llm.py
"""
Language model capabilities used by the pipeline.

Three capabilities, each a prompt + a tolerant parse:
- extract_skills(jd_text) -> list[str]
- generate_questions(skill, count) -> list[str]
- generate_aliases(skill) -> list[str]

Every raw reply is first turned into a typed result, ``Ok(items)`` when the
reply holds the expected JSON list and ``Fallback(raw)`` when it does not.
The ``*_from`` converters handle both branches explicitly, so malformed
output degrades to text parsing instead of raising.

Testing: the converters are pure; OpenAISkillLLM takes any object with a
``complete(system, user, temperature)`` method, so a scripted fake works.
"""

from __future__ import annotations
import re
import time
from dataclasses import dataclass
from typing import Callable, Protocol, TypeVar, Union

from loguru import logger
from openai import APIError, APITimeoutError, OpenAI, RateLimitError

from jdlens.core.config import Settings, settings as default_settings
from jdlens.core.errors import LLMUnavailable
from jdlens.nlp import prompts
from jdlens.nlp.llm_json import extract_json
from jdlens.nlp.text import normalize_skill_name

T = TypeVar("T")

_RETRY_DELAYS = (0.5, 1.0, 2.0, 4.0)

_SKILL_JUNK = re.compile(r"[^a-zA-Z0-9\s\+\#\.\-]")
_ENUM_MARKER = re.compile(r"^\s*(?:\d+\s*[\.\)]|[-*•])\s*")


# ---------------------------
# Typed results
# ---------------------------

@dataclass(frozen=True)
class Ok:
    items: list[str]


@dataclass(frozen=True)
class Fallback:
    raw: str


LLMResult = Union[Ok, Fallback]


def parse_string_list(raw: str | None, key: str) -> LLMResult:
    """Ok when raw holds {key: [...]} or a bare JSON list, else Fallback."""
    data = extract_json(raw)
    if isinstance(data, dict):
        data = data.get(key)
    if isinstance(data, list):
        return Ok([x for x in data if isinstance(x, str)])
    return Fallback(raw or "")


def _dedupe(items: list[str]) -> list[str]:
    seen = set()
    out = []
    for it in items:
        if it.lower() in seen:
            continue
        seen.add(it.lower())
        out.append(it)
    return out


def skills_from(result: LLMResult, *, limit: int = 15, fallback_limit: int = 10) -> list[str]:
    if isinstance(result, Ok):
        cleaned = [s.strip() for s in result.items if s.strip()]
        return _dedupe(cleaned)[:limit]

    lines = [_SKILL_JUNK.sub("", ln).strip() for ln in result.raw.splitlines() if ln.strip()]
    lines = [ln for ln in lines if 0 < len(ln) < 50]
    return _dedupe(lines)[:min(limit, fallback_limit)]


def questions_from(result: LLMResult, *, count: int) -> list[str]:
    if isinstance(result, Ok):
        cleaned = [q.strip() for q in result.items if q.strip()]
    else:
        cleaned = [_ENUM_MARKER.sub("", ln).strip() for ln in result.raw.splitlines()]
        cleaned = [q for q in cleaned if q]
    return cleaned[:max(count, 0)]


def mechanical_variations(skill: str) -> list[str]:
    """Spacing/punctuation variants used when the model gives nothing usable."""
    base = (skill or "").strip().lower()
    return [base, base.replace(" ", ""), base.replace(".", ""), base.replace(" ", ".")]


def aliases_from(result: LLMResult, skill: str, *, limit: int = 8) -> list[str]:
    candidates = result.items if isinstance(result, Ok) else mechanical_variations(skill)
    out = []
    for c in candidates:
        a = normalize_skill_name(c)
        if a and a not in out:
            out.append(a)
    return out[:limit]


# ---------------------------
# Clients
# ---------------------------

class SkillLLM(Protocol):
    def extract_skills(self, text: str) -> list[str]: ...

    def generate_questions(self, skill: str, count: int) -> list[str]: ...

    def generate_aliases(self, skill: str) -> list[str]: ...


class ChatClient:
    """Thin wrapper around the OpenAI chat completions API (JSON mode)."""

    def __init__(self, api_key: str, model: str):
        if not api_key:
            raise LLMUnavailable("Missing OPENAI_API_KEY")
        self.model = model
        self.client = OpenAI(api_key=api_key)

    def _with_retries(self, fn: Callable[[], T]) -> T:
        for delay in _RETRY_DELAYS:
            try:
                return fn()
            except (RateLimitError, APITimeoutError, APIError) as e:
                logger.warning(f"[llm] {type(e).__name__}, retrying in {delay:.1f}s")
                time.sleep(delay)
        return fn()

    def complete(self, system: str, user: str, temperature: float) -> str:
        def call():
            return self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )

        cc = self._with_retries(call)
        return cc.choices[0].message.content or ""


class Completer(Protocol):
    def complete(self, system: str, user: str, temperature: float) -> str: ...


class OpenAISkillLLM:
    def __init__(self, chat: Completer | None = None, config: Settings | None = None):
        self.config = config or default_settings
        self.chat = chat or ChatClient(self.config.OPENAI_API_KEY, self.config.OPENAI_MODEL)

    def _ask(self, user: str, temperature: float, key: str) -> LLMResult:
        raw = self.chat.complete(prompts.build_system(), user, temperature)
        result = parse_string_list(raw, key)
        if isinstance(result, Fallback):
            logger.warning(f"[llm] reply had no '{key}' list, using text fallback")
        return result

    def extract_skills(self, text: str) -> list[str]:
        result = self._ask(
            prompts.skills_instruction(text=text), self.config.EXTRACTION_TEMPERATURE, "skills"
        )
        return skills_from(
            result,
            limit=self.config.MAX_EXTRACTED_SKILLS,
            fallback_limit=self.config.MAX_FALLBACK_SKILLS,
        )

    def generate_questions(self, skill: str, count: int) -> list[str]:
        if count <= 0:
            return []
        result = self._ask(
            prompts.questions_instruction(skill=skill, count=count),
            self.config.GENERATION_TEMPERATURE,
            "questions",
        )
        return questions_from(result, count=count)

    def generate_aliases(self, skill: str) -> list[str]:
        limit = self.config.MAX_GENERATED_ALIASES
        result = self._ask(
            prompts.aliases_instruction(skill=skill, limit=limit),
            self.config.EXTRACTION_TEMPERATURE,
            "aliases",
        )
        return aliases_from(result, skill, limit=limit)
