"""Database package"""

from taskdash.db.base import Base
from taskdash.db.session import SessionLocal, engine, get_db, init_db

__all__ = ["Base", "SessionLocal", "engine", "get_db", "init_db"]
