from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional
from uuid import uuid4

from ..clock import utcnow


class Subtask(SQLModel, table=True):
    __tablename__ = "subtasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True, ondelete="CASCADE")
    title: str
    completed: bool = Field(default=False)
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)

    task: Optional["Task"] = Relationship(back_populates="subtasks")
