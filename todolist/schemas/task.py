from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from ..models import RepeatType, TaskStatus


class TagRead(BaseModel):
    id: str
    name: str
    color: str

    class Config:
        from_attributes = True


class SubtaskRead(BaseModel):
    id: str
    title: str
    completed: bool
    sort_order: int

    class Config:
        from_attributes = True


class CommentRead(BaseModel):
    id: str
    user_id: str
    content: str
    created_at: datetime
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class TaskCreate(BaseModel):
    """Schema for creating new tasks."""
    title: str
    description: Optional[str] = None
    priority: int = Field(default=0, ge=0, le=3)
    due_date: Optional[datetime] = None
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    repeat_type: Optional[RepeatType] = None
    repeat_interval: int = Field(default=1, ge=1)
    tag_ids: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Schema for partial task updates.

    Only fields present in the request body are applied. Sending ``null``
    for a nullable field (description, due_date, minutes, repeat_type)
    clears it.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=0, le=3)
    due_date: Optional[datetime] = None
    status: Optional[TaskStatus] = None
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    actual_minutes: Optional[int] = Field(default=None, ge=0)
    completed: Optional[bool] = None
    archived: Optional[bool] = None
    repeat_type: Optional[RepeatType] = None
    repeat_interval: Optional[int] = Field(default=None, ge=1)
    tag_ids: Optional[List[str]] = None


class Task(BaseModel):
    """Complete task schema with tags, subtasks and progress."""
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    priority: int
    due_date: Optional[datetime] = None
    status: TaskStatus
    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    archived: bool
    repeat_type: Optional[RepeatType] = None
    repeat_interval: int
    last_repeated_at: Optional[datetime] = None
    completed: bool
    completed_at: Optional[datetime] = None
    share_token: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    tags: List[TagRead] = Field(default_factory=list)
    subtasks: List[SubtaskRead] = Field(default_factory=list)
    progress: int = 0


class ShareLink(BaseModel):
    share_token: str
    share_url: str


class SharedTask(Task):
    """A shared task as seen through its public link."""
    username: str
    avatar_url: Optional[str] = None
    comments: List[CommentRead] = Field(default_factory=list)
