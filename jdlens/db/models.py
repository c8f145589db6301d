# jdlens/db/models.py
import enum
from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer, LargeBinary,
    String, Text, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jdlens.db.base import Base


class AnalysisStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Skill(Base):
    __tablename__ = "skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    aliases = relationship("SkillAlias", back_populates="skill", cascade="all, delete-orphan")
    questions = relationship("Question", back_populates="skill")


# canonical names are unique regardless of case
Index("uq_skills_name_lower", func.lower(Skill.__table__.c.name), unique=True)


class SkillAlias(Base):
    __tablename__ = "skill_aliases"
    __table_args__ = (UniqueConstraint("skill_id", "alias", name="uq_skill_alias"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    skill_id: Mapped[int] = mapped_column(ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    alias: Mapped[str] = mapped_column(String(255), index=True, nullable=False)  # normalized form

    skill = relationship("Skill", back_populates="aliases")


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    skill_id: Mapped[int] = mapped_column(ForeignKey("skills.id"), index=True, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)  # np.float32 tobytes()
    embedding_dim: Mapped[int] = mapped_column(Integer, nullable=False)

    skill = relationship("Skill", back_populates="questions")


class JobDescription(Base):
    __tablename__ = "job_descriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str | None] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    embedding_dim: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AnalysisStatus] = mapped_column(
        Enum(AnalysisStatus, name="analysis_status"), default=AnalysisStatus.PENDING, nullable=False
    )
    skills_analyzed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_skills: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    skills = relationship(
        "JobDescriptionSkill",
        back_populates="job_description",
        cascade="all, delete-orphan",
        order_by="JobDescriptionSkill.id",
    )
    analysis = relationship(
        "JobDescriptionAnalysis",
        back_populates="job_description",
        uselist=False,
        cascade="all, delete-orphan",
    )


class JobDescriptionSkill(Base):
    __tablename__ = "job_description_skills"
    __table_args__ = (UniqueConstraint("job_description_id", "skill_id", name="uq_jd_skill"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_description_id: Mapped[int] = mapped_column(
        ForeignKey("job_descriptions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    skill_id: Mapped[int] = mapped_column(ForeignKey("skills.id"), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    source: Mapped[str] = mapped_column(String(32), default="extracted", nullable=False)  # existing | extracted
    is_processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    questions_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    job_description = relationship("JobDescription", back_populates="skills")
    skill = relationship("Skill")
    questions = relationship(
        "SkillQuestion",
        back_populates="job_description_skill",
        cascade="all, delete-orphan",
        order_by="SkillQuestion.id",
    )


class SkillQuestion(Base):
    __tablename__ = "skill_questions"
    __table_args__ = (
        UniqueConstraint("job_description_skill_id", "question_id", name="uq_skill_question"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_description_skill_id: Mapped[int] = mapped_column(
        ForeignKey("job_description_skills.id", ondelete="CASCADE"), index=True, nullable=False
    )
    question_id: Mapped[int] = mapped_column(ForeignKey("questions.id"), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)  # existing | similar | generated
    confidence: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)

    job_description_skill = relationship("JobDescriptionSkill", back_populates="questions")
    question = relationship("Question")


class JobDescriptionAnalysis(Base):
    __tablename__ = "job_description_analyses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_description_id: Mapped[int] = mapped_column(
        ForeignKey("job_descriptions.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    source: Mapped[str] = mapped_column(String(32), nullable=False)  # similar_jd | extracted
    message: Mapped[str] = mapped_column(Text, nullable=False)
    similar_jds: Mapped[str | None] = mapped_column(Text)  # JSON string list
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    job_description = relationship("JobDescription", back_populates="analysis")
