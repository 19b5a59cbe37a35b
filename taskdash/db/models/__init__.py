"""SQLAlchemy ORM models"""

from taskdash.db.models.task import Task

__all__ = ["Task"]
