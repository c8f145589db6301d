# jdlens/db/queries.py
"""
Store operations used by the pipeline. Plain functions, caller session first.

Writes flush but do not commit; the caller owns the transaction boundary.
The exceptions are ``add_alias`` and ``create_skill``, which commit on their
own because a uniqueness violation has to be rolled back and re-read.
"""
from typing import Iterable, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jdlens.db.models import (
    JobDescription, JobDescriptionAnalysis, JobDescriptionSkill, Question,
    Skill, SkillAlias, SkillQuestion,
)


# ---------------------------
# Skills & aliases
# ---------------------------

def all_skills(s: Session) -> Sequence[Skill]:
    return s.execute(select(Skill).order_by(Skill.id)).scalars().all()


def find_skill_by_name(s: Session, name: str) -> Skill | None:
    return s.execute(
        select(Skill).where(func.lower(Skill.name) == name.strip().lower())
    ).scalars().first()


def find_skill_by_alias(s: Session, alias: str) -> Skill | None:
    return s.execute(
        select(Skill)
        .join(SkillAlias, SkillAlias.skill_id == Skill.id)
        .where(func.lower(SkillAlias.alias) == alias.strip().lower())
        .order_by(Skill.id)
    ).scalars().first()


def aliases_of_skill(s: Session, skill_id: int) -> list[str]:
    return list(s.execute(
        select(SkillAlias.alias).where(SkillAlias.skill_id == skill_id).order_by(SkillAlias.id)
    ).scalars().all())


def create_skill(s: Session, name: str) -> tuple[Skill, bool]:
    """
    Insert a skill with the given name verbatim.
    Returns (skill, created). On a uniqueness violation the existing row is
    re-read instead.
    """
    skill = Skill(name=name.strip())
    s.add(skill)
    try:
        s.commit()
        return skill, True
    except IntegrityError:
        s.rollback()
        existing = find_skill_by_name(s, name)
        if existing is None:
            raise
        return existing, False


def add_alias(s: Session, skill_id: int, alias: str) -> bool:
    """Insert one alias; duplicates are ignored. True when a row was written."""
    exists = s.execute(
        select(SkillAlias.id).where(SkillAlias.skill_id == skill_id, SkillAlias.alias == alias)
    ).scalar()
    if exists:
        return False
    s.add(SkillAlias(skill_id=skill_id, alias=alias))
    try:
        s.commit()
        return True
    except IntegrityError:
        s.rollback()
        return False


# ---------------------------
# Questions
# ---------------------------

def questions_for_skill(s: Session, skill_id: int, limit: int | None = None) -> Sequence[Question]:
    stmt = select(Question).where(Question.skill_id == skill_id).order_by(Question.id)
    if limit is not None:
        stmt = stmt.limit(limit)
    return s.execute(stmt).scalars().all()


def questions_outside_skill(s: Session, skill_id: int, exclude_ids: Iterable[int] = ()) -> Sequence[Question]:
    stmt = select(Question).where(Question.skill_id != skill_id).order_by(Question.id)
    exclude_ids = list(exclude_ids)
    if exclude_ids:
        stmt = stmt.where(Question.id.not_in(exclude_ids))
    return s.execute(stmt).scalars().all()


# ---------------------------
# Job descriptions
# ---------------------------

def get_job_description(s: Session, jd_id: int) -> JobDescription | None:
    return s.get(JobDescription, jd_id)


def all_job_descriptions(s: Session, exclude_id: int | None = None) -> Sequence[JobDescription]:
    stmt = select(JobDescription).order_by(JobDescription.id)
    if exclude_id is not None:
        stmt = stmt.where(JobDescription.id != exclude_id)
    return s.execute(stmt).scalars().all()


def skills_of_job_description(s: Session, jd_id: int) -> Sequence[Skill]:
    return s.execute(
        select(Skill)
        .join(JobDescriptionSkill, JobDescriptionSkill.skill_id == Skill.id)
        .where(JobDescriptionSkill.job_description_id == jd_id)
        .order_by(JobDescriptionSkill.id)
    ).scalars().all()


def upsert_jd_skill(s: Session, jd_id: int, skill_id: int, confidence: float, source: str) -> JobDescriptionSkill:
    row = s.execute(
        select(JobDescriptionSkill).where(
            JobDescriptionSkill.job_description_id == jd_id,
            JobDescriptionSkill.skill_id == skill_id,
        )
    ).scalars().first()
    if row is None:
        row = JobDescriptionSkill(job_description_id=jd_id, skill_id=skill_id)
        s.add(row)
    row.confidence = confidence
    row.source = source
    row.is_processed = False
    row.questions_count = 0
    s.flush()
    return row


def jd_skills(s: Session, jd_id: int) -> Sequence[JobDescriptionSkill]:
    return s.execute(
        select(JobDescriptionSkill)
        .where(JobDescriptionSkill.job_description_id == jd_id)
        .order_by(JobDescriptionSkill.id)
    ).scalars().all()


def upsert_skill_question(s: Session, jd_skill_id: int, question_id: int, source: str, confidence: float) -> SkillQuestion:
    row = s.execute(
        select(SkillQuestion).where(
            SkillQuestion.job_description_skill_id == jd_skill_id,
            SkillQuestion.question_id == question_id,
        )
    ).scalars().first()
    if row is None:
        row = SkillQuestion(job_description_skill_id=jd_skill_id, question_id=question_id)
        s.add(row)
    row.source = source
    row.confidence = confidence
    s.flush()
    return row


def clear_skill_questions(s: Session, jd_id: int) -> None:
    jd_skill_ids = select(JobDescriptionSkill.id).where(JobDescriptionSkill.job_description_id == jd_id)
    s.execute(
        delete(SkillQuestion)
        .where(SkillQuestion.job_description_skill_id.in_(jd_skill_ids))
        .execution_options(synchronize_session=False)
    )


def upsert_analysis(s: Session, jd_id: int, source: str, message: str, similar_jds: str | None = None) -> JobDescriptionAnalysis:
    row = s.execute(
        select(JobDescriptionAnalysis).where(JobDescriptionAnalysis.job_description_id == jd_id)
    ).scalars().first()
    if row is None:
        row = JobDescriptionAnalysis(job_description_id=jd_id, source=source, message=message)
        s.add(row)
    row.source = source
    row.message = message
    row.similar_jds = similar_jds
    s.flush()
    return row
