# jdlens/nlp/normalizer.py
"""
Skill name canonicalization and alias sets.

aliases_of(name) resolves in this order and stops at the first hit:
  1. AliasCache (process-scoped, keyed by normalized name)
  2. persisted SkillAlias rows of a skill matching the name or an alias
  3. STATIC_ALIAS_GROUPS for well-known ecosystem spellings
  4. the LLM alias capability (with a mechanical fallback)

Aliases found in step 4 are written to skill_aliases as soon as the name is
tied to a skill row, so the LLM runs at most once per distinct skill name.
"""
from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING, Iterable

from loguru import logger
from sqlalchemy.orm import Session

from jdlens.db import queries
from jdlens.nlp.llm import Fallback, aliases_from
from jdlens.nlp.text import normalize_skill_name

if TYPE_CHECKING:
    from jdlens.db.models import Skill
    from jdlens.nlp.llm import SkillLLM

normalize = normalize_skill_name

_STATIC_GROUPS = [
    ["react", "reactjs", "react js", "react.js"],
    ["next", "nextjs", "next js", "next.js"],
    ["node", "nodejs", "node js", "node.js"],
]

# normalized spelling -> every normalized spelling in its group
STATIC_ALIAS_GROUPS: dict[str, frozenset[str]] = {}
for _group in _STATIC_GROUPS:
    _normed = frozenset(normalize(g) for g in _group)
    for _name in _normed:
        STATIC_ALIAS_GROUPS[_name] = _normed


def static_aliases(name: str) -> set[str]:
    key = normalize(name)
    return {key, *STATIC_ALIAS_GROUPS.get(key, ())}


class AliasCache:
    """Append-only map of normalized skill name -> alias set.

    Purely an optimization; persisted aliases are the source of truth.
    """

    def __init__(self) -> None:
        self._data: dict[str, frozenset[str]] = {}
        self._lock = Lock()

    def get(self, key: str) -> frozenset[str] | None:
        return self._data.get(key)

    def put(self, key: str, aliases: Iterable[str]) -> frozenset[str]:
        with self._lock:
            merged = frozenset(aliases) | self._data.get(key, frozenset())
            self._data[key] = merged
            return merged

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class SkillNormalizer:
    def __init__(self, session: Session, cache: AliasCache, llm: SkillLLM | None = None):
        self.s = session
        self.cache = cache
        self.llm = llm

    def aliases_of(self, name: str) -> frozenset[str]:
        """Alias set for name; always contains normalize(name)."""
        key = normalize(name)
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        skill = queries.find_skill_by_name(self.s, name) or queries.find_skill_by_alias(self.s, key)
        if skill is not None:
            stored = queries.aliases_of_skill(self.s, skill.id)
            if stored:
                logger.debug(f"[aliases] '{name}' resolved from {len(stored)} stored aliases of '{skill.name}'")
                return self.cache.put(key, {key, name, skill.name, *stored})

        if key in STATIC_ALIAS_GROUPS:
            return self.cache.put(key, {name, *static_aliases(name)})

        generated = self._generate(name)
        aliases = {key, name, *generated}
        if skill is not None:
            self._persist(skill.id, [key, *generated])
        return self.cache.put(key, aliases)

    def bind(self, name: str, skill: Skill) -> None:
        """Persist the aliases known for name under skill."""
        key = normalize(name)
        known = self.cache.get(key) or frozenset()
        self._persist(skill.id, [key, normalize(skill.name), *(normalize(a) for a in known)])

    def _generate(self, name: str) -> list[str]:
        if self.llm is None:
            return []
        try:
            aliases = self.llm.generate_aliases(name)
        except Exception:
            logger.exception(f"[aliases] alias generation failed for '{name}', using spelling variants")
            return aliases_from(Fallback(""), name)
        logger.info(f"[aliases] generated {len(aliases)} aliases for '{name}'")
        return aliases

    def _persist(self, skill_id: int, aliases: Iterable[str]) -> None:
        written = 0
        for a in dict.fromkeys(aliases):
            if a and queries.add_alias(self.s, skill_id, a):
                written += 1
        if written:
            logger.debug(f"[aliases] stored {written} aliases for skill {skill_id}")
