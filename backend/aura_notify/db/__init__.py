from aura_notify.db.base import Base
from aura_notify.db.session import get_db, engine, SessionLocal
from aura_notify.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
