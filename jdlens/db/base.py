from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


# --- IMPORT ALL MODELS HERE so create_all sees them ---
from jdlens.db import models  # noqa: E402,F401
