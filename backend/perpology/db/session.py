"""
Database session and engine.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from perpology.config import settings
from perpology.db.base import Base


def _engine_kwargs(url: str) -> dict:
    # SQLite: FastAPI runs sync routes in a threadpool, so allow cross-thread use; no server pool
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 8,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_timeout": 30,
    }


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables (SQLite dev). Production schemas come from alembic upgrade head."""
    import perpology.models  # noqa: F401  register models on Base.metadata

    Base.metadata.create_all(bind=engine)
