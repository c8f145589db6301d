# jdlens/pipeline/skill_matcher.py
"""
Resolve extracted skill names to catalog skills.

Per name: a text/alias pass over the whole catalog, then (only when the
best text score is below SKILL_SEMANTIC_SKIP) an embedding pass. The higher
confidence wins regardless of which pass produced it. Anything below
SKILL_MATCH_THRESHOLD becomes a new skill row. Every accepted name is bound
to its skill, so the aliases found for it are stored under that skill.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Iterable

import numpy as np
from loguru import logger
from sqlalchemy.orm import Session

from jdlens.core.config import Settings, settings as default_settings
from jdlens.db import queries
from jdlens.db.models import Skill
from jdlens.nlp.embeddings import Embedder
from jdlens.nlp.normalizer import SkillNormalizer, normalize
from jdlens.nlp.vector_math import cosine_similarity

EXACT_SCORE = 1.0
ALIAS_SCORE = 0.95
SUBSTRING_WEIGHT = 0.9


@dataclass
class MatchedSkill:
    id: int
    name: str
    confidence: float
    source: str  # "existing" | "extracted"

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "confidence": self.confidence, "source": self.source}


def text_similarity(extracted: str, existing: str, aliases: Collection[str] = ()) -> float:
    """
    1.0 for identical normalized names, 0.95 when the existing name is one of
    the extracted name's (normalized) aliases, a length-ratio score for
    substrings, else 0.
    """
    a, b = normalize(extracted), normalize(existing)
    if not a or not b:
        return 0.0
    if a == b:
        return EXACT_SCORE
    if b in aliases:
        return ALIAS_SCORE
    if a in b or b in a:
        shorter, longer = sorted((a, b), key=len)
        return (len(shorter) / len(longer)) * SUBSTRING_WEIGHT
    return 0.0


class SkillMatcher:
    def __init__(
        self,
        session: Session,
        embedder: Embedder,
        normalizer: SkillNormalizer,
        config: Settings | None = None,
    ):
        self.s = session
        self.embedder = embedder
        self.normalizer = normalizer
        self.config = config or default_settings

    def match_skills(self, names: Iterable[str]) -> list[MatchedSkill]:
        """One result per input name, in input order. Creates unmatched skills."""
        catalog = list(queries.all_skills(self.s))
        vectors: dict[str, np.ndarray] = {}
        return [self._match_one(name, catalog, vectors) for name in names]

    def match_skill(self, name: str) -> MatchedSkill:
        return self.match_skills([name])[0]

    def _skill_vector(self, skill: Skill, vectors: dict[str, np.ndarray]) -> np.ndarray:
        if skill.name not in vectors:
            vectors[skill.name] = self.embedder.embed(skill.name)
        return vectors[skill.name]

    def _match_one(self, name: str, catalog: list[Skill], vectors: dict[str, np.ndarray]) -> MatchedSkill:
        aliases = {normalize(a) for a in self.normalizer.aliases_of(name)}

        best: Skill | None = None
        best_score = 0.0
        for skill in catalog:
            score = text_similarity(name, skill.name, aliases)
            if score > best_score:
                best, best_score = skill, score

        if best is None or best_score < self.config.SKILL_SEMANTIC_SKIP:
            query = self.embedder.embed(name)
            for skill in catalog:
                sim = cosine_similarity(query, self._skill_vector(skill, vectors))
                if sim >= self.config.SKILL_MATCH_THRESHOLD and sim > best_score:
                    best, best_score = skill, sim

        if best is not None and best_score >= self.config.SKILL_MATCH_THRESHOLD:
            confidence = min(max(best_score, 0.0), 1.0)
            logger.debug(f"[match] '{name}' -> '{best.name}' ({confidence:.3f})")
            self.normalizer.bind(name, best)
            return MatchedSkill(best.id, best.name, confidence, "existing")

        skill, created = queries.create_skill(self.s, name)
        self.normalizer.bind(name, skill)
        if not created:
            # lost a creation race; the row another writer created is an exact match
            logger.info(f"[match] '{name}' was created concurrently, using skill {skill.id}")
            if all(c.id != skill.id for c in catalog):
                catalog.append(skill)
            return MatchedSkill(skill.id, skill.name, EXACT_SCORE, "existing")

        logger.info(f"[match] created skill '{skill.name}' ({skill.id})")
        catalog.append(skill)
        return MatchedSkill(skill.id, skill.name, EXACT_SCORE, "extracted")
