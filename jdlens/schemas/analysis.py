# jdlens/schemas/analysis.py
from typing import Optional

from pydantic import BaseModel, Field


class JobDescriptionIn(BaseModel):
    content: str = Field(..., description="Raw job description text")
    title: Optional[str] = None


class StoredJobDescription(BaseModel):
    job_description_id: int
    status: str
    message: str = "Job description stored successfully"


class StartAnalysisOut(BaseModel):
    job_description_id: int
    status: str
    message: str
    started: bool


class SkillGenerateIn(BaseModel):
    skill_name: str
    count: int = Field(5, ge=1, le=50)


class QuestionOut(BaseModel):
    id: Optional[int] = None
    text: str
    confidence: float
    source: str


class SkillOut(BaseModel):
    id: int
    name: str
    confidence: float
    source: str


class SkillQuestionsOut(BaseModel):
    skill: SkillOut
    questions: list[QuestionOut]
    existing_count: int
    similar_count: int
    generated_count: int
