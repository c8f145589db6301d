# jdlens/api/deps.py
"""
Request dependencies. Process-wide collaborators live on app.state so tests
can build an app around an in-memory database and fakes.
"""
from typing import Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from jdlens.core.errors import LLMUnavailable
from jdlens.nlp.embeddings import Embedder
from jdlens.nlp.llm import OpenAISkillLLM, SkillLLM
from jdlens.nlp.normalizer import AliasCache
from jdlens.pipeline.orchestrator import AnalysisOrchestrator


def get_db(request: Request) -> Generator[Session, None, None]:
    """Request-scoped session from the app's session factory."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_embedder(request: Request) -> Embedder:
    return request.app.state.embedder


def get_llm(request: Request) -> SkillLLM:
    # created on first use so the service starts without an API key
    if request.app.state.llm is None:
        try:
            request.app.state.llm = OpenAISkillLLM()
        except LLMUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))
    return request.app.state.llm


def get_alias_cache(request: Request) -> AliasCache:
    return request.app.state.alias_cache


def get_orchestrator(
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    llm: SkillLLM = Depends(get_llm),
    cache: AliasCache = Depends(get_alias_cache),
) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(db, embedder, llm, cache)


def get_reporting_orchestrator(
    request: Request,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    cache: AliasCache = Depends(get_alias_cache),
) -> AnalysisOrchestrator:
    """For store/status, which never call the language model."""
    return AnalysisOrchestrator(db, embedder, request.app.state.llm, cache)
