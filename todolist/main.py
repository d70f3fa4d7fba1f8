import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from .clock import get_now
from .config import CORS_ORIGINS, LOG_LEVEL
from .database import create_tables, get_db
from .logging_setup import setup_logging
from .models import User
from .routers import auth, stats, tasks
from .routers.auth import get_optional_user
from .schemas.task import SharedTask
from .schemas.user import User as UserSchema
from .services.recurrence import process_repeat_tasks
from .services.tasks import get_shared_task

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="TodoList Pro API",
    description="Personal task tracking with tags, subtasks, sharing and statistics",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(tasks.router, prefix="/api", tags=["tasks"])
app.include_router(stats.router, prefix="/api", tags=["stats"])


# Configure logging and create tables on startup
@app.on_event("startup")
def on_startup():
    setup_logging(LOG_LEVEL)
    create_tables()
    logger.info("TodoList Pro API started")


@app.get("/")
def read_root(
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Entry point. Reopens due repeating tasks for the signed-in user."""
    if current_user is None:
        return {"message": "TodoList Pro API", "user": None}

    reopened = process_repeat_tasks(db, current_user.id, now)
    return {
        "message": "TodoList Pro API",
        "user": UserSchema.model_validate(current_user).model_dump(mode="json"),
        "reopened": reopened,
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/share/{token}", response_model=SharedTask)
def read_shared_task(token: str, db: Session = Depends(get_db)):
    """Public, read-only view of a shared task."""
    shared = get_shared_task(db, token)
    if not shared:
        raise HTTPException(status_code=404, detail="Not found")
    return shared
