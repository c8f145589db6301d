# jdlens/pipeline/jd_matcher.py
"""
Decide whether a job description can reuse the skill set of a stored one.

A stored JD is a reuse candidate when it is the most similar one and clears
JD_REUSE_THRESHOLD. Embedding similarity alone is not trusted: skills are
extracted from the new text and at least one of them has to text/alias-match
(>= JD_VALIDATION_THRESHOLD) a skill of the candidate. Boilerplate-heavy
postings for different roles embed close together; this check keeps them
apart.
"""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
from loguru import logger
from sqlalchemy.orm import Session

from jdlens.core.config import Settings, settings as default_settings
from jdlens.db import queries
from jdlens.db.models import Skill
from jdlens.nlp.embeddings import Embedder, from_blob
from jdlens.nlp.llm import SkillLLM
from jdlens.nlp.normalizer import SkillNormalizer, normalize
from jdlens.nlp.vector_math import cosine_similarity
from jdlens.pipeline.skill_matcher import text_similarity

PREVIEW_CHARS = 200


@dataclass
class SimilarJD:
    id: int
    title: str | None
    similarity: float
    content: str

    def as_dict(self) -> dict:
        preview = self.content[:PREVIEW_CHARS] + "..." if len(self.content) > PREVIEW_CHARS else self.content
        return {"id": self.id, "title": self.title, "similarity": self.similarity, "content": preview}


@dataclass
class ReuseDecision:
    reuse: bool
    skills: list[Skill] = field(default_factory=list)
    similar_jds: list[SimilarJD] = field(default_factory=list)
    # skills extracted during validation; None when validation did not run
    extracted: list[str] | None = None

    @property
    def top_similarity(self) -> float:
        return self.similar_jds[0].similarity if self.similar_jds else 0.0


class JobDescriptionMatcher:
    def __init__(
        self,
        session: Session,
        embedder: Embedder,
        llm: SkillLLM,
        normalizer: SkillNormalizer,
        config: Settings | None = None,
    ):
        self.s = session
        self.embedder = embedder
        self.llm = llm
        self.normalizer = normalizer
        self.config = config or default_settings

    def find_similar(
        self,
        query: np.ndarray,
        *,
        min_similarity: float | None = None,
        limit: int | None = None,
        exclude_id: int | None = None,
    ) -> list[SimilarJD]:
        """Full scan over stored JDs; similarity >= floor, best first."""
        floor = self.config.JD_SIMILARITY_FLOOR if min_similarity is None else min_similarity
        limit = self.config.JD_SIMILAR_LIMIT if limit is None else limit

        hits = []
        for jd in queries.all_job_descriptions(self.s, exclude_id=exclude_id):
            sim = cosine_similarity(query, from_blob(jd.embedding))
            if sim >= floor:
                hits.append(SimilarJD(jd.id, jd.title, sim, jd.content))
        hits.sort(key=lambda h: (-h.similarity, h.id))
        return hits[:limit]

    def find_reusable_skill_set(
        self,
        jd_text: str,
        *,
        embedding: np.ndarray | None = None,
        exclude_id: int | None = None,
    ) -> ReuseDecision:
        query = self.embedder.embed(jd_text) if embedding is None else embedding
        similar = self.find_similar(query, exclude_id=exclude_id)

        if not similar or similar[0].similarity < self.config.JD_REUSE_THRESHOLD:
            logger.info(f"[jd] no reuse candidate ({len(similar)} similar JDs)")
            return ReuseDecision(False, [], similar)

        top = similar[0]
        candidate_skills = list(queries.skills_of_job_description(self.s, top.id))
        extracted = self.llm.extract_skills(jd_text)

        if not self.validate(extracted, candidate_skills):
            logger.info(
                f"[jd] JD {top.id} is {top.similarity:.1%} similar but its skills do not match, extracting fresh"
            )
            return ReuseDecision(False, [], similar, extracted)

        logger.info(f"[jd] reusing {len(candidate_skills)} skills of JD {top.id} ({top.similarity:.1%} match)")
        return ReuseDecision(True, candidate_skills, similar, extracted)

    def validate(self, extracted: list[str], candidate_skills: list[Skill]) -> bool:
        """True when some extracted skill text/alias-matches some candidate skill."""
        if not extracted or not candidate_skills:
            return False
        threshold = self.config.JD_VALIDATION_THRESHOLD

        # exact and substring scores need no alias lookup
        for name in extracted:
            for skill in candidate_skills:
                if text_similarity(name, skill.name) >= threshold:
                    return True

        for name in extracted:
            aliases = {normalize(a) for a in self.normalizer.aliases_of(name)}
            for skill in candidate_skills:
                if text_similarity(name, skill.name, aliases) >= threshold:
                    self.normalizer.bind(name, skill)
                    return True
        return False
