from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime
from typing import Optional, List
from uuid import uuid4

from ..clock import utcnow


class User(SQLModel, table=True):
    """A GitHub-backed account. Every other row hangs off a user."""
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    github_id: str = Field(unique=True, index=True)
    username: str
    avatar_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    tasks: List["Task"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
