from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from datetime import datetime
from typing import List
from uuid import uuid4

from ..clock import utcnow
from .task import TaskTag

DEFAULT_TAG_COLOR = "#667eea"


class Tag(SQLModel, table=True):
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    name: str
    color: str = Field(default=DEFAULT_TAG_COLOR)
    created_at: datetime = Field(default_factory=utcnow)

    tasks: List["Task"] = Relationship(back_populates="tags", link_model=TaskTag)
