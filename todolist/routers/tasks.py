from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..clock import get_now
from ..config import APP_URL
from ..database import get_db
from ..models import TaskStatus, User
from ..schemas.task import ShareLink, Task as TaskSchema, TaskCreate, TaskUpdate
from ..services import tasks as task_service
from .auth import get_current_user

router = APIRouter()


def _get_update_data(task_update: TaskUpdate) -> dict:
    return task_update.model_dump(exclude_unset=True)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


@router.get("/todos", response_model=List[TaskSchema])
def get_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    priority: Optional[int] = None,
    archived: bool = False,
    tag_id: Optional[str] = None,
    due_before: Optional[datetime] = None,
    due_after: Optional[datetime] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the user's tasks with optional filtering."""
    filters = task_service.TaskFilters(
        archived=archived,
        status=status_filter.value if status_filter else None,
        priority=priority,
        due_before=due_before,
        due_after=due_after,
        search=search,
        tag_id=tag_id,
    )
    tasks = task_service.list_tasks(db, current_user.id, filters)
    return [task_service.serialize_task(task) for task in tasks]


@router.post("/todos", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Create a new task for the user."""
    if not task.title.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")

    db_task = task_service.create_task(db, current_user.id, task, now)
    return task_service.serialize_task(db_task)


@router.get("/todos/{task_id}", response_model=TaskSchema)
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get a specific task by ID."""
    task = task_service.get_task(db, current_user.id, task_id)
    if not task:
        raise _not_found()
    return task_service.serialize_task(task)


@router.patch("/todos/{task_id}", response_model=TaskSchema)
def update_task(
    task_id: str,
    task_update: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Partially update a task; omitted fields are left untouched."""
    changes = _get_update_data(task_update)
    if changes.get("title") is not None and not changes["title"].strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title is required")

    task = task_service.update_task(db, current_user.id, task_id, changes, now)
    if not task:
        raise _not_found()
    return task_service.serialize_task(task)


@router.delete("/todos/{task_id}")
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a task along with its subtasks, comments and tag links."""
    if not task_service.delete_task(db, current_user.id, task_id):
        raise _not_found()
    return {"success": True}


@router.post("/todos/{task_id}/share", response_model=ShareLink)
def share_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    token = task_service.share_task(db, current_user.id, task_id)
    if not token:
        raise _not_found()
    return {"share_token": token, "share_url": f"{APP_URL}/share/{token}"}


@router.delete("/todos/{task_id}/share")
def unshare_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not task_service.unshare_task(db, current_user.id, task_id):
        raise _not_found()
    return {"success": True}
