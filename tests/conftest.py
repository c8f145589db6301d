"""
Shared fixtures: a fresh in-memory database per test, a deterministic
embedder, a scripted language model and a fresh alias cache.
"""

import re

import numpy as np
import pytest
from sqlalchemy.pool import StaticPool

from jdlens.core.config import Settings
from jdlens.db.base import Base
from jdlens.db.models import Question, Skill
from jdlens.db.session import make_engine, make_sessionmaker
from jdlens.nlp.embeddings import to_blob
from jdlens.nlp.normalizer import AliasCache

_TOKEN = re.compile(r"[a-z0-9+#]+")


class FakeEmbedder:
    """
    Bag-of-words vectors. Every distinct token gets its own dimension on first
    sight, so texts sharing no tokens are orthogonal and identical texts have
    similarity 1.0. ``vectors`` overrides the vector for an exact text.
    """

    def __init__(self, dim: int = 512):
        self.dim = dim
        self.vocab: dict[str, int] = {}
        self.vectors: dict[str, np.ndarray] = {}
        self.calls: list[str] = []

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if text in self.vectors:
            return np.asarray(self.vectors[text], dtype=np.float32)
        vec = np.zeros(self.dim, dtype=np.float32)
        for tok in _TOKEN.findall(text.lower()):
            idx = self.vocab.setdefault(tok, len(self.vocab))
            vec[idx] += 1.0
        norm = np.linalg.norm(vec)
        return vec / norm if norm else vec


class FakeLLM:
    """Scripted SkillLLM that records every call."""

    def __init__(self):
        self.skills: list[str] = []
        self.skills_by_text: dict[str, list[str]] = {}
        self.aliases: dict[str, list[str]] = {}
        self.question_limit: int | None = None
        self.fail: set[str] = set()
        self.calls: list[tuple] = []
        self._n = 0

    def _check(self, name):
        if name in self.fail:
            raise RuntimeError(f"{name} is down")

    def extract_skills(self, text):
        self.calls.append(("extract_skills", text))
        self._check("extract_skills")
        return list(self.skills_by_text.get(text, self.skills))

    def generate_questions(self, skill, count):
        self.calls.append(("generate_questions", skill, count))
        self._check("generate_questions")
        if self.question_limit is not None:
            count = min(count, self.question_limit)
        out = []
        for _ in range(count):
            self._n += 1
            out.append(f"Explain {skill} topic number {self._n}?")
        return out

    def generate_aliases(self, skill):
        self.calls.append(("generate_aliases", skill))
        self._check("generate_aliases")
        return list(self.aliases.get(skill, []))

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)


@pytest.fixture
def engine():
    eng = make_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def alias_cache():
    return AliasCache()


@pytest.fixture
def config():
    return Settings(_env_file=None, QUESTIONS_PER_SKILL=5)


@pytest.fixture
def add_skill(session):
    def _add(name: str) -> Skill:
        skill = Skill(name=name)
        session.add(skill)
        session.commit()
        return skill
    return _add


@pytest.fixture
def add_question(session, embedder):
    def _add(skill: Skill, text: str, vector=None) -> Question:
        vec = embedder.embed(text) if vector is None else np.asarray(vector, dtype=np.float32)
        q = Question(skill_id=skill.id, text=text, embedding=to_blob(vec), embedding_dim=int(vec.shape[-1]))
        session.add(q)
        session.commit()
        return q
    return _add
