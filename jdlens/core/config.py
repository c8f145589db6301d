from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'
    )

    APP_NAME: str = "JDLens"
    APP_ENV: str = "dev"
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    # SQLite connection string (read from .env)
    DATABASE_URL: str = "sqlite:///./jdlens.db"

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str | None = None

    # Language model
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4.1"
    EXTRACTION_TEMPERATURE: float = 0.3
    GENERATION_TEMPERATURE: float = 0.7

    # Embeddings
    EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"

    # Skill matching
    SKILL_MATCH_THRESHOLD: float = 0.8
    SKILL_SEMANTIC_SKIP: float = 0.95

    # Job description reuse
    JD_SIMILARITY_FLOOR: float = 0.9
    JD_REUSE_THRESHOLD: float = 0.95
    JD_VALIDATION_THRESHOLD: float = 0.9
    JD_SIMILAR_LIMIT: int = 3

    # Questions
    QUESTION_SIMILARITY_THRESHOLD: float = 0.9
    QUESTIONS_PER_SKILL: int = 10
    SIMILAR_QUESTION_POLICY: Literal["reuse", "regenerate"] = "reuse"

    # LLM output caps
    MAX_EXTRACTED_SKILLS: int = 15
    MAX_FALLBACK_SKILLS: int = 10
    MAX_GENERATED_ALIASES: int = 8

settings = Settings()
