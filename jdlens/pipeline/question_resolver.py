# jdlens/pipeline/question_resolver.py
"""
Assemble a target-sized question list for one skill from three tiers:

  existing  - questions stored under the skill (ascending id), confidence 1.0
  similar   - near-duplicate questions stored under other skills, confidence
              = cosine similarity to the skill name
  generated - the remaining shortfall, generated by the LLM, embedded and
              stored under the skill, confidence 1.0

Generation only runs when tiers 1-2 leave a shortfall, so once a skill has
enough stored questions repeated calls never reach the LLM.

SIMILAR_QUESTION_POLICY="regenerate" keeps tier-2 hits out of the result
when generation can replace them; they are only used verbatim if
generation comes up short.
"""
from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.orm import Session

from jdlens.core.config import Settings, settings as default_settings
from jdlens.db import queries
from jdlens.db.models import Question
from jdlens.nlp.embeddings import Embedder, from_blob, to_blob
from jdlens.nlp.llm import SkillLLM
from jdlens.nlp.vector_math import cosine_similarity

EXISTING = "existing"
SIMILAR = "similar"
GENERATED = "generated"


@dataclass
class ResolvedQuestion:
    id: int | None
    text: str
    confidence: float
    source: str
    needs_generation: bool = False

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "confidence": self.confidence,
            "source": self.source,
            "needs_generation": self.needs_generation,
        }


class QuestionResolver:
    def __init__(
        self,
        session: Session,
        embedder: Embedder,
        llm: SkillLLM,
        config: Settings | None = None,
    ):
        self.s = session
        self.embedder = embedder
        self.llm = llm
        self.config = config or default_settings

    # ---------------------------
    # Read-only planning
    # ---------------------------

    def plan(self, skill_id: int, skill_name: str, target: int) -> list[ResolvedQuestion]:
        """
        Tiers 1-2 plus generation placeholders (id None, needs_generation True).
        No writes and no LLM calls.
        """
        direct = queries.questions_for_skill(self.s, skill_id, limit=target)
        planned = [ResolvedQuestion(q.id, q.text, 1.0, EXISTING) for q in direct]
        if len(planned) >= target:
            return planned

        regenerate = self.config.SIMILAR_QUESTION_POLICY == "regenerate"
        for q, sim in self.similar_questions(skill_id, skill_name, target - len(planned), [q.id for q in direct]):
            planned.append(ResolvedQuestion(q.id, q.text, sim, SIMILAR, needs_generation=regenerate))

        planned += [
            ResolvedQuestion(None, "", 0.0, GENERATED, needs_generation=True)
            for _ in range(target - len(planned))
        ]
        return planned

    def similar_questions(
        self, skill_id: int, skill_name: str, limit: int, exclude_ids: list[int]
    ) -> list[tuple[Question, float]]:
        if limit <= 0:
            return []
        candidates = queries.questions_outside_skill(self.s, skill_id, exclude_ids)
        if not candidates:
            return []

        query = self.embedder.embed(skill_name)
        threshold = self.config.QUESTION_SIMILARITY_THRESHOLD
        scored = []
        for q in candidates:
            sim = cosine_similarity(query, from_blob(q.embedding))
            if sim >= threshold:
                scored.append((q, min(sim, 1.0)))
        scored.sort(key=lambda pair: (-pair[1], pair[0].id))
        return scored[:limit]

    # ---------------------------
    # Resolution (may generate)
    # ---------------------------

    def resolve_questions(self, skill_id: int, skill_name: str, target: int) -> list[ResolvedQuestion]:
        """
        Exactly `target` entries unless the similar tier and the generator
        together come up short, in which case fewer are returned.
        """
        planned = self.plan(skill_id, skill_name, target)
        existing = [q for q in planned if q.source == EXISTING]
        similar = [q for q in planned if q.source == SIMILAR]
        slots = sum(1 for q in planned if q.needs_generation)
        if not slots:
            return planned

        generated = self._generate(skill_id, skill_name, slots, seen=[q.text for q in existing])

        # generated questions fill pure placeholders first, then displace similar ones
        pure = slots - sum(1 for q in similar if q.needs_generation)
        displaced = max(0, len(generated) - pure)
        kept_similar = []
        for q in similar:
            if q.needs_generation and displaced > 0:
                displaced -= 1
                continue
            q.needs_generation = False
            kept_similar.append(q)

        result = existing + kept_similar + generated
        logger.info(
            f"[questions] {skill_name}: {len(existing)} existing + {len(kept_similar)} similar"
            f" + {len(generated)} generated = {len(result)}/{target}"
        )
        return result

    def _generate(self, skill_id: int, skill_name: str, count: int, seen: list[str]) -> list[ResolvedQuestion]:
        texts = self.llm.generate_questions(skill_name, count)
        known = {t.strip().lower() for t in seen}
        out = []
        for text in texts:
            text = text.strip()
            if not text or text.lower() in known:
                continue
            known.add(text.lower())
            vec = self.embedder.embed(text)
            q = Question(skill_id=skill_id, text=text, embedding=to_blob(vec), embedding_dim=int(vec.shape[-1]))
            self.s.add(q)
            self.s.flush()
            out.append(ResolvedQuestion(q.id, q.text, 1.0, GENERATED))
            if len(out) >= count:
                break
        if len(out) < count:
            logger.warning(f"[questions] {skill_name}: asked for {count} questions, got {len(out)}")
        return out
