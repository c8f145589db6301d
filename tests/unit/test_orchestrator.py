"""Unit tests for the JD analysis state machine."""

import pytest
from sqlalchemy import func, select

from jdlens.core.errors import AnalysisFailed, JobDescriptionNotFound
from jdlens.db import queries
from jdlens.db.models import AnalysisStatus, Skill
from jdlens.pipeline.orchestrator import AnalysisOrchestrator, status_message

JD_TEXT = "Backend engineer: build Python services packaged with Docker."


@pytest.fixture
def orch(session, embedder, llm, alias_cache, config):
    llm.skills = ["Python", "Docker"]
    return AnalysisOrchestrator(session, embedder, llm, alias_cache, config)


@pytest.fixture
def started(orch):
    jd = orch.store_job_description(JD_TEXT, "Backend")
    orch.start_analysis(jd.id)
    return jd


@pytest.mark.unit
class TestStore:

    def test_store_is_pending(self, orch):
        jd = orch.store_job_description(f"  {JD_TEXT}  ", "  ")
        assert jd.status == AnalysisStatus.PENDING
        assert jd.content == JD_TEXT
        assert jd.title is None
        assert jd.embedding_dim > 0

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_content_rejected(self, orch, content):
        with pytest.raises(ValueError):
            orch.store_job_description(content)


@pytest.mark.unit
class TestStartAnalysis:

    def test_start_attaches_skills(self, orch, session, started):
        jd = queries.get_job_description(session, started.id)
        assert jd.status == AnalysisStatus.IN_PROGRESS
        assert jd.total_skills == 2
        assert [s.name for s in queries.skills_of_job_description(session, jd.id)] == ["Python", "Docker"]
        assert jd.analysis.source == "extracted"

    def test_start_twice_is_a_no_op(self, orch, session, started):
        jd = queries.get_job_description(session, started.id)
        jd.skills_analyzed = 1
        session.commit()

        result = orch.start_analysis(started.id)

        assert result == {"status": "IN_PROGRESS", "message": "Analysis already in progress", "started": False}
        assert queries.get_job_description(session, started.id).skills_analyzed == 1

    def test_unknown_jd(self, orch):
        with pytest.raises(JobDescriptionNotFound):
            orch.start_analysis(999)

    def test_extraction_failure_fails_jd(self, orch, llm):
        llm.fail.add("extract_skills")
        jd = orch.store_job_description(JD_TEXT)

        with pytest.raises(AnalysisFailed):
            orch.start_analysis(jd.id)

        status = orch.get_status(jd.id)
        assert status["status"] == "FAILED"
        assert status["message"] == "Analysis failed. Please try again."
        assert "skills" not in status

    def test_failed_is_terminal(self, orch, llm):
        llm.fail.add("extract_skills")
        jd = orch.store_job_description(JD_TEXT)
        with pytest.raises(AnalysisFailed):
            orch.start_analysis(jd.id)
        llm.fail.clear()

        result = orch.start_analysis(jd.id)

        assert result["started"] is False
        assert result["status"] == "FAILED"


@pytest.mark.unit
class TestProcessSkills:

    def test_completes_with_questions(self, orch, session, started, llm):
        jd = orch.process_skills(started.id)

        assert jd.status == AnalysisStatus.COMPLETED
        assert jd.skills_analyzed == jd.total_skills == 2
        rows = queries.jd_skills(session, jd.id)
        assert all(r.is_processed and r.questions_count == 5 for r in rows)
        assert llm.count("generate_questions") == 2

    def test_failing_skill_is_skipped(self, orch, session, started, llm):
        llm.fail.add("generate_questions")

        jd = orch.process_skills(started.id)

        assert jd.status == AnalysisStatus.COMPLETED
        assert jd.skills_analyzed == 2
        assert all(r.questions_count == 0 for r in queries.jd_skills(session, jd.id))

    def test_dimension_mismatch_fails_jd(self, orch, session, add_skill, add_question):
        add_question(add_skill("Go"), "What is a goroutine?", vector=[1.0, 0.0, 0.0])
        jd = orch.store_job_description(JD_TEXT)
        orch.start_analysis(jd.id)

        with pytest.raises(AnalysisFailed):
            orch.process_skills(jd.id)

        assert orch.get_status(jd.id)["status"] == "FAILED"

    def test_pending_jd_is_untouched(self, orch, llm):
        jd = orch.store_job_description(JD_TEXT)
        assert orch.process_skills(jd.id).status == AnalysisStatus.PENDING
        assert llm.calls == []


@pytest.mark.unit
class TestStatus:

    def test_pending(self, orch):
        jd = orch.store_job_description(JD_TEXT)
        status = orch.get_status(jd.id)
        assert status["status"] == "PENDING"
        assert status["message"] == "Analysis is queued and will start shortly"
        assert status["progress"] == {"skills_analyzed": 0, "total_skills": 0, "percentage": 0}

    def test_in_progress(self, orch, started):
        status = orch.get_status(started.id)
        assert status["status"] == "IN_PROGRESS"
        assert status["message"] == "Analyzing skills: 0 of 2 completed"
        assert status["progress"]["total_skills"] == 2

    def test_completed_report(self, orch, started):
        orch.process_skills(started.id)

        report = orch.get_status(started.id)

        assert report["status"] == "COMPLETED"
        assert report["source"] == "extracted"
        assert report["message"] == "Extracted 2 skills from job description and processed questions."
        assert [s["name"] for s in report["skills"]] == ["Python", "Docker"]
        python = report["skills"][0]
        assert python["source"] == "extracted"
        assert len(python["questions"]) == 5
        assert python["generated_count"] == 5
        assert python["existing_count"] == python["similar_count"] == 0
        assert report["similar_jds"] == []

    def test_unknown(self, orch):
        with pytest.raises(JobDescriptionNotFound):
            orch.get_status(42)

    def test_status_message(self):
        assert status_message(AnalysisStatus.IN_PROGRESS, 3, 7) == "Analyzing skills: 3 of 7 completed"


@pytest.mark.unit
class TestReanalysis:

    def test_identical_jd_reuses_skills(self, orch, session, llm):
        first = orch.analyze(JD_TEXT, "Backend")
        skills_before = session.execute(select(func.count(Skill.id))).scalar()

        second = orch.analyze(JD_TEXT, "Backend (repost)")

        assert second["source"] == "similar_jd"
        assert second["message"] == "Found similar job description (100.0% match). Using existing skills."
        assert second["similar_jds"][0]["id"] == first["job_description_id"]
        assert session.execute(select(func.count(Skill.id))).scalar() == skills_before
        assert all(s["source"] == "existing" and s["confidence"] == 1.0 for s in second["skills"])
        assert all(s["existing_count"] == 5 for s in second["skills"])
        assert llm.count("generate_questions") == 2


@pytest.mark.unit
class TestConcurrentStart:

    def test_stale_reader_does_not_restart(self, session_factory, embedder, llm, alias_cache, config):
        llm.skills = ["Python", "Docker"]
        first, second = session_factory(), session_factory()
        try:
            slow = AnalysisOrchestrator(first, embedder, llm, alias_cache, config)
            fast = AnalysisOrchestrator(second, embedder, llm, alias_cache, config)
            jd = fast.store_job_description(JD_TEXT)
            stale = queries.get_job_description(first, jd.id)
            first.commit()
            assert stale.status == AnalysisStatus.PENDING

            fast.start_analysis(jd.id)
            fast.process_skills(jd.id)
            result = slow.start_analysis(jd.id)

            assert result == {"status": "COMPLETED", "message": "Analysis already completed", "started": False}
            assert llm.count("extract_skills") == 1
            done = queries.get_job_description(second, jd.id)
            second.refresh(done)
            assert done.status == AnalysisStatus.COMPLETED
            assert done.skills_analyzed == done.total_skills == 2
        finally:
            first.close()
            second.close()


@pytest.mark.unit
class TestMarkFailed:

    def test_completed_stays_completed(self, orch, session, started):
        orch.process_skills(started.id)
        orch.mark_failed(started.id)
        assert queries.get_job_description(session, started.id).status == AnalysisStatus.COMPLETED

    def test_in_progress_becomes_failed(self, orch, session, started):
        orch.mark_failed(started.id)
        assert queries.get_job_description(session, started.id).status == AnalysisStatus.FAILED
