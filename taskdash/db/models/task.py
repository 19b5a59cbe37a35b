"""SQLAlchemy ORM model for tasks table"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Numeric, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from taskdash.db.base import Base


class Task(Base):
    """
    SQLAlchemy ORM model for the tasks table.
    A row with parent_task_id set is a subtask of that row.
    """
    __tablename__ = "tasks"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Task information
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="unrated", index=True)
    notes = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    is_focus_task = Column(Boolean, nullable=False, default=False)

    # Ratings (null means "not rated yet", 0 is a real rating)
    energy = Column(Integer, nullable=True)
    simplicity = Column(Integer, nullable=True)
    impact = Column(Integer, nullable=True)
    score = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    # Sizing
    cognitive_density = Column(Integer, nullable=False, default=0)
    estimated_hours = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)

    # Reflection fields
    actual_energy = Column(Integer, nullable=True)
    actual_simplicity = Column(Integer, nullable=True)
    actual_impact = Column(Integer, nullable=True)
    time_spent = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    # Subtasks
    parent_task_id = Column(
        Integer,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=True
    )

    # Only one level deep. Self-referential eager loading needs join_depth,
    # otherwise async code would hit a lazy load
    subtasks = relationship(
        "Task",
        order_by="Task.position",
        cascade="all",
        lazy="selectin",
        join_depth=1,
    )

    @property
    def is_subtask(self) -> bool:
        return self.parent_task_id is not None

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title='{self.title}', status='{self.status}')>"
