from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional
from uuid import uuid4

from ..clock import utcnow


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True, ondelete="CASCADE")
    user_id: str = Field(foreign_key="users.id", ondelete="CASCADE")
    content: str
    created_at: datetime = Field(default_factory=utcnow)

    task: Optional["Task"] = Relationship(back_populates="comments")
    user: Optional["User"] = Relationship()
