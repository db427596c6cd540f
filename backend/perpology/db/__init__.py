from perpology.db.base import Base
from perpology.db.session import get_db, engine, SessionLocal
from perpology.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
