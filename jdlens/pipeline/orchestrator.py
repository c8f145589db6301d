# jdlens/pipeline/orchestrator.py
"""
JD analysis lifecycle: PENDING -> IN_PROGRESS -> COMPLETED | FAILED.

start_analysis() does everything that has to succeed for the JD to be
analyzable at all (similar-JD search, skill extraction/matching, attaching
skills). A failure there moves the JD to FAILED. process_skills() then
resolves questions skill by skill, in order, committing progress after each
one; a failing skill is logged and skipped. An embedding dimension
mismatch is a misconfiguration and fails the whole JD.

Starting a JD that is not PENDING is a no-op that reports its status.
"""
from __future__ import annotations

import json

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from jdlens.core.config import Settings, settings as default_settings
from jdlens.core.errors import AnalysisFailed, DimensionMismatchError, JobDescriptionNotFound
from jdlens.db import queries
from jdlens.db.models import AnalysisStatus, JobDescription, JobDescriptionSkill, SkillQuestion
from jdlens.nlp.embeddings import Embedder, from_blob, to_blob
from jdlens.nlp.llm import SkillLLM
from jdlens.nlp.normalizer import AliasCache, SkillNormalizer
from jdlens.pipeline.jd_matcher import JobDescriptionMatcher
from jdlens.pipeline.question_resolver import EXISTING, GENERATED, SIMILAR, QuestionResolver
from jdlens.pipeline.skill_matcher import SkillMatcher

STATUS_MESSAGES = {
    AnalysisStatus.PENDING: "Analysis is queued and will start shortly",
    AnalysisStatus.IN_PROGRESS: "Analyzing skills: {analyzed} of {total} completed",
    AnalysisStatus.COMPLETED: "Analysis completed successfully",
    AnalysisStatus.FAILED: "Analysis failed. Please try again.",
}

ALREADY_MESSAGES = {
    AnalysisStatus.IN_PROGRESS: "Analysis already in progress",
    AnalysisStatus.COMPLETED: "Analysis already completed",
    AnalysisStatus.FAILED: "Analysis already failed",
}


def status_message(status: AnalysisStatus, analyzed: int, total: int) -> str:
    return STATUS_MESSAGES[status].format(analyzed=analyzed, total=total)


class AnalysisOrchestrator:
    def __init__(
        self,
        session: Session,
        embedder: Embedder,
        llm: SkillLLM,
        cache: AliasCache,
        config: Settings | None = None,
    ):
        self.s = session
        self.embedder = embedder
        self.llm = llm
        self.config = config or default_settings

        self.normalizer = SkillNormalizer(session, cache, llm)
        self.skill_matcher = SkillMatcher(session, embedder, self.normalizer, self.config)
        self.question_resolver = QuestionResolver(session, embedder, llm, self.config)
        self.jd_matcher = JobDescriptionMatcher(session, embedder, llm, self.normalizer, self.config)

    def _get(self, jd_id: int) -> JobDescription:
        jd = queries.get_job_description(self.s, jd_id)
        if jd is None:
            raise JobDescriptionNotFound(jd_id)
        return jd

    # ---------------------------
    # Lifecycle
    # ---------------------------

    def store_job_description(self, content: str, title: str | None = None) -> JobDescription:
        content = (content or "").strip()
        if not content:
            raise ValueError("Job description is required")
        vec = self.embedder.embed(content)
        jd = JobDescription(
            title=(title or "").strip() or None,
            content=content,
            embedding=to_blob(vec),
            embedding_dim=int(vec.shape[-1]),
            status=AnalysisStatus.PENDING,
            skills_analyzed=0,
            total_skills=0,
        )
        self.s.add(jd)
        self.s.commit()
        logger.info(f"[analysis] stored job description {jd.id}")
        return jd

    def start_analysis(self, jd_id: int) -> dict:
        jd = self._get(jd_id)
        # only a PENDING row is claimed, so concurrent starts run the work once
        claimed = self.s.execute(
            update(JobDescription)
            .where(JobDescription.id == jd_id, JobDescription.status == AnalysisStatus.PENDING)
            .values(status=AnalysisStatus.IN_PROGRESS, skills_analyzed=0, total_skills=0)
            .execution_options(synchronize_session=False)
        ).rowcount
        self.s.commit()
        self.s.refresh(jd)
        if not claimed:
            return {"status": jd.status.value, "message": ALREADY_MESSAGES[jd.status], "started": False}

        try:
            total = self._prepare(jd)
        except Exception as e:
            self.s.rollback()
            logger.exception(f"[analysis] JD {jd_id} failed before skill processing")
            self.mark_failed(jd_id)
            raise AnalysisFailed(jd_id, e) from e

        logger.info(f"[analysis] JD {jd_id}: {total} skills to process")
        return {"status": AnalysisStatus.IN_PROGRESS.value, "message": "Analysis started successfully", "started": True}

    def _prepare(self, jd: JobDescription) -> int:
        decision = self.jd_matcher.find_reusable_skill_set(
            jd.content, embedding=from_blob(jd.embedding), exclude_id=jd.id
        )
        similar_json = json.dumps([h.as_dict() for h in decision.similar_jds])

        if decision.reuse:
            for skill in decision.skills:
                queries.upsert_jd_skill(self.s, jd.id, skill.id, 1.0, "existing")
            queries.upsert_analysis(
                self.s, jd.id, "similar_jd",
                f"Found similar job description ({decision.top_similarity * 100:.1f}% match). Using existing skills.",
                similar_json,
            )
        else:
            extracted = decision.extracted
            if extracted is None:
                extracted = self.llm.extract_skills(jd.content)
            matched = self.skill_matcher.match_skills(extracted)
            for m in matched:
                queries.upsert_jd_skill(self.s, jd.id, m.id, m.confidence, m.source)
            queries.upsert_analysis(
                self.s, jd.id, "extracted",
                f"Extracted {len(extracted)} skills from job description and processed questions.",
                similar_json,
            )

        queries.clear_skill_questions(self.s, jd.id)
        total = len(queries.jd_skills(self.s, jd.id))
        jd.total_skills = total
        self.s.commit()
        return total

    def process_skills(self, jd_id: int) -> JobDescription:
        """Resolve questions for every attached skill, one at a time."""
        jd = self._get(jd_id)
        if jd.status != AnalysisStatus.IN_PROGRESS:
            return jd

        row_ids = [r.id for r in queries.jd_skills(self.s, jd_id)]
        target = self.config.QUESTIONS_PER_SKILL
        for i, row_id in enumerate(row_ids, start=1):
            row = self.s.get(JobDescriptionSkill, row_id)
            if not row.is_processed:
                try:
                    self._process_skill(row, target)
                    self.s.commit()
                except DimensionMismatchError as e:
                    self.s.rollback()
                    logger.error(f"[analysis] JD {jd_id}: {e}")
                    self.mark_failed(jd_id)
                    raise AnalysisFailed(jd_id, e) from e
                except Exception:
                    self.s.rollback()
                    logger.exception(f"[analysis] JD {jd_id}: skill {i}/{len(row_ids)} failed, continuing")

            jd = self._get(jd_id)
            jd.skills_analyzed = max(jd.skills_analyzed, i)
            self.s.commit()

        jd.status = AnalysisStatus.COMPLETED
        self.s.commit()
        logger.success(f"[analysis] JD {jd_id} completed ({jd.skills_analyzed}/{jd.total_skills} skills)")
        return jd

    def _process_skill(self, row: JobDescriptionSkill, target: int) -> None:
        skill = row.skill
        questions = self.question_resolver.resolve_questions(skill.id, skill.name, target)
        for q in questions:
            queries.upsert_skill_question(self.s, row.id, q.id, q.source, q.confidence)
        row.questions_count = len(questions)
        row.is_processed = True

    def mark_failed(self, jd_id: int) -> None:
        """Move an unfinished JD to FAILED; COMPLETED stays COMPLETED."""
        jd = self._get(jd_id)
        if jd.status == AnalysisStatus.COMPLETED:
            return
        jd.status = AnalysisStatus.FAILED
        self.s.commit()

    def run(self, jd_id: int) -> dict:
        self.start_analysis(jd_id)
        self.process_skills(jd_id)
        return self.get_status(jd_id)

    def analyze(self, content: str, title: str | None = None) -> dict:
        """Store, analyze and report in one call."""
        jd = self.store_job_description(content, title)
        return self.run(jd.id)

    # ---------------------------
    # Reporting
    # ---------------------------

    def get_status(self, jd_id: int) -> dict:
        self.s.expire_all()
        jd = self._get(jd_id)
        if jd.status == AnalysisStatus.COMPLETED and jd.analysis is not None:
            return self.report(jd)

        total = jd.total_skills
        return {
            "job_description_id": jd.id,
            "status": jd.status.value,
            "progress": {
                "skills_analyzed": jd.skills_analyzed,
                "total_skills": total,
                "percentage": round(jd.skills_analyzed / total * 100) if total > 0 else 0,
            },
            "message": status_message(jd.status, jd.skills_analyzed, total),
        }

    def report(self, jd: JobDescription) -> dict:
        skills = []
        for row in queries.jd_skills(self.s, jd.id):
            links = self.s.execute(
                select(SkillQuestion)
                .where(SkillQuestion.job_description_skill_id == row.id)
                .order_by(SkillQuestion.id)
            ).scalars().all()
            questions = [
                {"id": sq.question_id, "text": sq.question.text, "confidence": sq.confidence, "source": sq.source}
                for sq in links
            ]
            skills.append({
                "id": row.skill.id,
                "name": row.skill.name,
                "confidence": row.confidence,
                "source": row.source,
                "questions": questions,
                "existing_count": sum(1 for q in questions if q["source"] == EXISTING),
                "similar_count": sum(1 for q in questions if q["source"] == SIMILAR),
                "generated_count": sum(1 for q in questions if q["source"] == GENERATED),
            })

        analysis = jd.analysis
        return {
            "job_description_id": jd.id,
            "status": jd.status.value,
            "source": analysis.source,
            "message": analysis.message,
            "skills": skills,
            "similar_jds": json.loads(analysis.similar_jds) if analysis.similar_jds else [],
        }
