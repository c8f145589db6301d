# jdlens/api/jd_routes.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from loguru import logger

from jdlens.api.deps import get_orchestrator, get_reporting_orchestrator
from jdlens.core.errors import AnalysisFailed, JobDescriptionNotFound
from jdlens.pipeline.orchestrator import AnalysisOrchestrator, STATUS_MESSAGES
from jdlens.db.models import AnalysisStatus
from jdlens.schemas.analysis import JobDescriptionIn, StartAnalysisOut, StoredJobDescription

router = APIRouter(prefix="/jd", tags=["jd"])

FAILED_DETAIL = STATUS_MESSAGES[AnalysisStatus.FAILED]


def _process_in_background(state, jd_id: int) -> None:
    """Sequential skill processing on its own session, after the response is sent."""
    with state.session_factory() as s:
        orch = AnalysisOrchestrator(s, state.embedder, state.llm, state.alias_cache)
        try:
            orch.process_skills(jd_id)
        except AnalysisFailed:
            logger.exception(f"[analysis] background processing of JD {jd_id} failed")
        except Exception:
            s.rollback()
            logger.exception(f"[analysis] background processing of JD {jd_id} crashed, marking it FAILED")
            orch.mark_failed(jd_id)


# ---------------------------
# Routes
# ---------------------------

@router.post("/store", response_model=StoredJobDescription)
def store_job_description(payload: JobDescriptionIn, orch: AnalysisOrchestrator = Depends(get_reporting_orchestrator)):
    """Persist a job description (status PENDING) without analyzing it."""
    try:
        jd = orch.store_job_description(payload.content, payload.title)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return StoredJobDescription(job_description_id=jd.id, status=jd.status.value)


@router.post("/process/{jd_id}", response_model=StartAnalysisOut)
def process_job_description(
    jd_id: int,
    request: Request,
    background: BackgroundTasks,
    orch: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Start analysis; questions are resolved skill by skill in the background."""
    try:
        result = orch.start_analysis(jd_id)
    except JobDescriptionNotFound:
        raise HTTPException(status_code=404, detail="Job description not found")
    except AnalysisFailed:
        raise HTTPException(status_code=500, detail=FAILED_DETAIL)

    if result["started"]:
        background.add_task(_process_in_background, request.app.state, jd_id)
    return StartAnalysisOut(job_description_id=jd_id, **result)


@router.get("/status/{jd_id}")
def job_description_status(jd_id: int, orch: AnalysisOrchestrator = Depends(get_reporting_orchestrator)):
    try:
        return orch.get_status(jd_id)
    except JobDescriptionNotFound:
        raise HTTPException(status_code=404, detail="Job description not found")


@router.post("/analyze")
def analyze_job_description(payload: JobDescriptionIn, orch: AnalysisOrchestrator = Depends(get_orchestrator)):
    """Store, analyze and return the full report in one request."""
    try:
        return orch.analyze(payload.content, payload.title)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AnalysisFailed:
        raise HTTPException(status_code=500, detail=FAILED_DETAIL)
