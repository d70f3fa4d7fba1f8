from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional, List
from uuid import uuid4
import enum

from ..clock import utcnow


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    DOING = "doing"
    DONE = "done"


class RepeatType(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TaskTag(SQLModel, table=True):
    """Link table between tasks and tags."""
    __tablename__ = "task_tags"

    task_id: str = Field(foreign_key="tasks.id", primary_key=True, ondelete="CASCADE")
    tag_id: str = Field(foreign_key="tags.id", primary_key=True, ondelete="CASCADE")


class Task(SQLModel, table=True):
    """A todo item owned by a single user.

    Invariants: ``completed`` is true iff ``completed_at`` is set, and
    ``status == "done"`` implies ``completed``.
    """
    __tablename__ = "tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    title: str
    description: Optional[str] = None
    priority: int = Field(default=0)
    due_date: Optional[datetime] = Field(default=None, index=True)
    status: str = Field(default=TaskStatus.TODO.value, index=True)
    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    archived: bool = Field(default=False, index=True)
    repeat_type: Optional[str] = None
    repeat_interval: int = Field(default=1)
    last_repeated_at: Optional[datetime] = None
    completed: bool = Field(default=False)
    completed_at: Optional[datetime] = None
    share_token: Optional[str] = Field(default=None, unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    user: Optional["User"] = Relationship(back_populates="tasks")
    tags: List["Tag"] = Relationship(back_populates="tasks", link_model=TaskTag)
    subtasks: List["Subtask"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    comments: List["Comment"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
