# jdlens/api/skill_routes.py
from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.orm import Session

from jdlens.api.deps import get_alias_cache, get_db, get_embedder, get_llm
from jdlens.core.config import settings
from jdlens.core.errors import DimensionMismatchError
from jdlens.nlp.embeddings import Embedder
from jdlens.nlp.llm import SkillLLM
from jdlens.nlp.normalizer import AliasCache, SkillNormalizer
from jdlens.pipeline.question_resolver import EXISTING, GENERATED, SIMILAR, QuestionResolver
from jdlens.pipeline.skill_matcher import SkillMatcher
from jdlens.schemas.analysis import SkillGenerateIn, SkillQuestionsOut

router = APIRouter(prefix="/skills", tags=["skills"])


@router.post("/generate", response_model=SkillQuestionsOut)
def generate_for_skill(
    payload: SkillGenerateIn,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    llm: SkillLLM = Depends(get_llm),
    cache: AliasCache = Depends(get_alias_cache),
):
    """Match (or create) one skill and resolve `count` interview questions for it."""
    name = payload.skill_name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Skill name is required")

    normalizer = SkillNormalizer(db, cache, llm)
    try:
        matched = SkillMatcher(db, embedder, normalizer, settings).match_skill(name)
        questions = QuestionResolver(db, embedder, llm, settings).resolve_questions(
            matched.id, matched.name, payload.count
        )
        db.commit()
    except DimensionMismatchError:
        db.rollback()
        logger.exception(f"[skills] question generation for '{name}' failed")
        raise HTTPException(status_code=500, detail="Failed to generate questions")

    return {
        "skill": matched.as_dict(),
        "questions": [q.as_dict() for q in questions],
        "existing_count": sum(1 for q in questions if q.source == EXISTING),
        "similar_count": sum(1 for q in questions if q.source == SIMILAR),
        "generated_count": sum(1 for q in questions if q.source == GENERATED),
    }
