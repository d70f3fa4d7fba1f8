"""Reopening of completed repeating tasks."""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..models import RepeatType, Task, TaskStatus

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)
WEEK = timedelta(days=7)


def months_between(earlier: datetime, later: datetime) -> int:
    """Calendar month delta; the day of month is ignored (Jan 31 -> Feb 1 is 1)."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def should_repeat(task: Task, now: datetime) -> bool:
    if task.completed_at is None:
        return False

    elapsed = now - task.completed_at
    if task.repeat_type == RepeatType.DAILY.value:
        return elapsed // DAY >= task.repeat_interval
    if task.repeat_type == RepeatType.WEEKLY.value:
        return elapsed // WEEK >= task.repeat_interval
    if task.repeat_type == RepeatType.MONTHLY.value:
        return months_between(task.completed_at, now) >= task.repeat_interval
    return False


def process_repeat_tasks(db: Session, user_id: str, now: Optional[datetime] = None) -> List[str]:
    """Reopen the user's completed repeating tasks whose interval has elapsed.

    The task row is reset in place (not copied), so each completion reopens
    at most once. A failed update is logged and skipped. Returns the ids of
    the reopened tasks.
    """
    now = now or utcnow()
    tasks = (
        db.query(Task)
        .filter(
            Task.user_id == user_id,
            Task.repeat_type.isnot(None),
            Task.completed.is_(True),
        )
        .all()
    )

    reopened = []
    for task in tasks:
        task_id = task.id
        if not should_repeat(task, now):
            continue

        try:
            task.completed = False
            task.completed_at = None
            task.status = TaskStatus.TODO.value
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to reopen repeating task %s", task_id)
            continue

        logger.info("Reopened %s task %s for user %s", task.repeat_type, task_id, user_id)
        reopened.append(task_id)

    return reopened
