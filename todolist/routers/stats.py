from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..clock import get_now
from ..database import get_db
from ..models import User
from ..schemas.stats import Stats, SummaryReport
from ..services.stats import get_stats, get_summary_report
from .auth import get_current_user

router = APIRouter()


@router.get("/stats", response_model=Stats)
def read_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Dashboard counters, streak and breakdowns."""
    return get_stats(db, current_user.id, now)


@router.get("/stats/summary", response_model=SummaryReport)
def read_summary(
    start: Optional[str] = None,
    end: Optional[str] = None,
    days: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Per-day and total activity for a date range.

    Parameters are parsed permissively: malformed dates or day counts fall
    back to the defaults (the trailing 7 days ending today).
    """
    return get_summary_report(db, current_user.id, start=start, end=end, days=days, now=now)
