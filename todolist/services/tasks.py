"""Task listing, writes and sharing."""
import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..models import Comment, Tag, Task, TaskStatus, TaskTag, User
from ..schemas.task import TaskCreate
from .stats import record_daily_event, round_half_up

logger = logging.getLogger(__name__)

# Fields a partial update may touch, and the subset that cannot be cleared.
_EDITABLE_FIELDS = (
    "title",
    "description",
    "priority",
    "due_date",
    "status",
    "estimated_minutes",
    "actual_minutes",
    "archived",
    "repeat_type",
    "repeat_interval",
)
_REQUIRED_FIELDS = {"title", "priority", "status", "archived", "repeat_interval"}


@dataclass
class TaskFilters:
    archived: bool = False
    status: Optional[str] = None
    priority: Optional[int] = None
    due_before: Optional[datetime] = None
    due_after: Optional[datetime] = None
    search: Optional[str] = None
    tag_id: Optional[str] = None


def serialize_task(task: Task) -> dict:
    """Column values plus tags, ordered subtasks and percent progress."""
    subtasks = sorted(task.subtasks, key=lambda s: (s.sort_order, s.created_at))
    done = sum(1 for s in subtasks if s.completed)
    data = task.model_dump()
    data["tags"] = [tag.model_dump() for tag in sorted(task.tags, key=lambda t: t.name)]
    data["subtasks"] = [s.model_dump() for s in subtasks]
    data["progress"] = round_half_up(done * 100 / len(subtasks)) if subtasks else 0
    return data


def list_tasks(db: Session, user_id: str, filters: Optional[TaskFilters] = None) -> List[Task]:
    filters = filters or TaskFilters()
    query = db.query(Task).filter(
        Task.user_id == user_id,
        Task.archived.is_(bool(filters.archived)),
    )

    if filters.status:
        query = query.filter(Task.status == filters.status)

    if filters.priority is not None:
        query = query.filter(Task.priority == filters.priority)

    if filters.due_before:
        query = query.filter(Task.due_date <= filters.due_before)

    if filters.due_after:
        query = query.filter(Task.due_date >= filters.due_after)

    if filters.search:
        pattern = f"%{filters.search}%"
        query = query.filter(or_(Task.title.like(pattern), Task.description.like(pattern)))

    if filters.tag_id:
        query = query.join(TaskTag, TaskTag.task_id == Task.id).filter(TaskTag.tag_id == filters.tag_id)

    return query.order_by(
        Task.priority.desc(),
        Task.due_date.asc().nulls_last(),
        Task.created_at.desc(),
    ).all()


def get_task(db: Session, user_id: str, task_id: str) -> Optional[Task]:
    return db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()


def _user_tags(db: Session, user_id: str, tag_ids: List[str]) -> List[Tag]:
    if not tag_ids:
        return []
    return db.query(Tag).filter(Tag.user_id == user_id, Tag.id.in_(tag_ids)).all()


def create_task(db: Session, user_id: str, data: TaskCreate, now: Optional[datetime] = None) -> Task:
    now = now or utcnow()
    task = Task(
        user_id=user_id,
        title=data.title.strip(),
        description=data.description or None,
        priority=data.priority,
        due_date=data.due_date,
        estimated_minutes=data.estimated_minutes,
        repeat_type=data.repeat_type.value if data.repeat_type else None,
        repeat_interval=data.repeat_interval,
        created_at=now,
        updated_at=now,
    )
    task.tags = _user_tags(db, user_id, data.tag_ids)
    db.add(task)
    record_daily_event(db, user_id, "created", now)
    db.commit()
    db.refresh(task)
    return task


def _mark_completed(db: Session, task: Task, now: datetime) -> None:
    task.completed = True
    task.completed_at = now
    record_daily_event(db, task.user_id, "completed", now)


def update_task(
    db: Session,
    user_id: str,
    task_id: str,
    changes: dict,
    now: Optional[datetime] = None,
) -> Optional[Task]:
    """Apply a partial update. ``changes`` holds only the fields the client sent.

    Completion follows the task invariants: completing stamps ``completed_at``
    and counts towards today's stats once, moving ``status`` to done
    completes the task, and un-completing a done task sends it back to todo.
    """
    now = now or utcnow()
    task = get_task(db, user_id, task_id)
    if not task:
        return None

    previous_status = task.status

    for field in _EDITABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if value is None and field in _REQUIRED_FIELDS:
            continue
        if isinstance(value, enum.Enum):
            value = value.value
        if field == "title":
            value = value.strip()
        setattr(task, field, value)

    completed = changes.get("completed")
    if completed is True and not task.completed:
        _mark_completed(db, task, now)
    elif completed is False:
        task.completed = False
        task.completed_at = None

    if task.status == TaskStatus.DONE.value and not task.completed:
        if previous_status != TaskStatus.DONE.value:
            _mark_completed(db, task, now)
        else:
            task.status = TaskStatus.TODO.value

    if changes.get("tag_ids") is not None:
        task.tags = _user_tags(db, user_id, changes["tag_ids"])

    task.updated_at = now
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, user_id: str, task_id: str) -> bool:
    task = get_task(db, user_id, task_id)
    if not task:
        return False
    db.delete(task)
    db.commit()
    return True


def generate_share_token() -> str:
    return secrets.token_hex(16)


def share_task(db: Session, user_id: str, task_id: str) -> Optional[str]:
    """Return the task's share token, minting one on first share."""
    task = get_task(db, user_id, task_id)
    if not task:
        return None
    if task.share_token:
        return task.share_token

    task.share_token = generate_share_token()
    db.commit()
    logger.info("Task %s shared by user %s", task_id, user_id)
    return task.share_token


def unshare_task(db: Session, user_id: str, task_id: str) -> bool:
    task = get_task(db, user_id, task_id)
    if not task:
        return False
    task.share_token = None
    db.commit()
    return True


def get_shared_task(db: Session, token: str) -> Optional[dict]:
    """Public view of a shared task: owner, subtasks and comments."""
    if not token:
        return None
    task = db.query(Task).filter(Task.share_token == token).first()
    if not task:
        return None

    owner = db.query(User).filter(User.id == task.user_id).first()
    comments = (
        db.query(Comment, User)
        .join(User, Comment.user_id == User.id)
        .filter(Comment.task_id == task.id)
        .order_by(Comment.created_at.asc())
        .all()
    )

    data = serialize_task(task)
    data["username"] = owner.username
    data["avatar_url"] = owner.avatar_url
    data["comments"] = [
        {**comment.model_dump(), "username": author.username, "avatar_url": author.avatar_url}
        for comment, author in comments
    ]
    return data
