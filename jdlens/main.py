# jdlens/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from loguru import logger

from jdlens.core.config import settings
from jdlens.core.logger import setup_logger
from jdlens.db.base import Base
from jdlens.db.session import SessionLocal, engine
from jdlens.nlp.embeddings import SentenceEmbedder
from jdlens.nlp.normalizer import AliasCache

# Routers
from jdlens.api.routes import router as api_router
from jdlens.api.jd_routes import router as jd_router
from jdlens.api.skill_routes import router as skill_router


def create_app(session_factory=None, embedder=None, llm=None, alias_cache=None) -> FastAPI:
    """
    Build the service. Collaborators default to the configured database, the
    sentence-transformers embedder and a lazily created OpenAI client.
    """
    setup_logger(settings.LOG_LEVEL, settings.LOG_DIR)
    app = FastAPI(title=settings.APP_NAME)

    # Root -> redirect to Swagger UI
    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url="/docs")

    # CORS
    origins = [o.strip() for o in settings.BACKEND_CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if session_factory is None:
        # Ensure tables exist
        Base.metadata.create_all(bind=engine)
        session_factory = SessionLocal

    app.state.session_factory = session_factory
    app.state.embedder = embedder or SentenceEmbedder()
    app.state.llm = llm
    app.state.alias_cache = alias_cache if alias_cache is not None else AliasCache()

    # API routes
    app.include_router(api_router)      # /health
    app.include_router(jd_router)       # /jd/*
    app.include_router(skill_router)    # /skills/*

    logger.info(f"[app] {settings.APP_NAME} ready ({settings.APP_ENV})")
    return app


def run() -> None:
    import uvicorn

    uvicorn.run("jdlens.main:create_app", factory=True, host=settings.APP_HOST, port=settings.APP_PORT)
