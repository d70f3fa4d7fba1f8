"""Dashboard statistics, the date-range summary report and DailyStat upkeep.

Every entry point takes an optional ``now`` so a single request reads the
clock once and all of its queries agree on what "today" is.
"""
import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import utcnow
from ..models import DailyStat, Task
from ..schemas.stats import (
    DailyStatRead,
    PriorityCount,
    Stats,
    StatusCount,
    SummaryBucket,
    SummaryDay,
    SummaryRange,
    SummaryReport,
)

logger = logging.getLogger(__name__)

RECENT_DAYS_LIMIT = 30
DEFAULT_SUMMARY_DAYS = 7
MAX_SUMMARY_DAYS = 365

_ISO_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


def round_half_up(value) -> int:
    """Round like JavaScript's Math.round; None and NaN become 0."""
    if value is None:
        return 0
    value = float(value)
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


# --- DailyStat maintenance ---


def find_daily_stat(db: Session, user_id: str, day: str) -> Optional[DailyStat]:
    return (
        db.query(DailyStat)
        .filter(DailyStat.user_id == user_id, DailyStat.date == day)
        .first()
    )


def record_daily_event(db: Session, user_id: str, kind: str, now: Optional[datetime] = None) -> DailyStat:
    """Bump today's created/completed counter for ``user_id``.

    The row is added to the caller's session but not committed, so it lands
    in the same transaction as the task write that caused it.
    """
    if kind not in ("created", "completed"):
        raise ValueError(f"Unknown daily stat event: {kind}")

    today = (now or utcnow()).date().isoformat()
    stat = find_daily_stat(db, user_id, today)
    if stat is None:
        stat = DailyStat(user_id=user_id, date=today, created_count=0, completed_count=0)
        try:
            with db.begin_nested():
                db.add(stat)
            logger.debug("Created daily stat row for user %s on %s", user_id, today)
        except IntegrityError:
            # Another request created today's row first; count on that one.
            logger.debug("Daily stat row for user %s on %s already exists", user_id, today)
            stat = find_daily_stat(db, user_id, today)

    if kind == "created":
        stat.created_count += 1
    else:
        stat.completed_count += 1

    db.flush()
    return stat


# --- Stats Aggregator ---


def compute_streak(days: Iterable[DailyStat]) -> int:
    """Count consecutive days with completions, newest row first.

    Only existing rows are inspected: a calendar day without a row is
    skipped rather than treated as a break, and the walk starts at the
    newest row whether or not that row is today.
    """
    streak = 0
    for day in sorted(days, key=lambda d: d.date, reverse=True):
        if day.completed_count > 0:
            streak += 1
        else:
            break
    return streak


def get_stats(db: Session, user_id: str, now: Optional[datetime] = None) -> Stats:
    """Dashboard numbers for one user."""
    now = now or utcnow()
    today = now.date().isoformat()
    week_ago = now - timedelta(days=7)

    total_todos = (
        db.query(func.count(Task.id))
        .filter(Task.user_id == user_id, Task.archived.is_(False))
        .scalar()
    )

    completed_today = (
        db.query(func.count(Task.id))
        .filter(
            Task.user_id == user_id,
            Task.completed.is_(True),
            func.date(Task.completed_at) == today,
        )
        .scalar()
    )

    completed_this_week = (
        db.query(func.count(Task.id))
        .filter(
            Task.user_id == user_id,
            Task.completed.is_(True),
            Task.completed_at >= week_ago,
        )
        .scalar()
    )

    recent_days = (
        db.query(DailyStat)
        .filter(DailyStat.user_id == user_id)
        .order_by(DailyStat.date.desc())
        .limit(RECENT_DAYS_LIMIT)
        .all()
    )

    avg_actual = (
        db.query(func.avg(Task.actual_minutes))
        .filter(
            Task.user_id == user_id,
            Task.completed.is_(True),
            Task.actual_minutes.isnot(None),
        )
        .scalar()
    )

    by_priority = (
        db.query(Task.priority, func.count(Task.id))
        .filter(Task.user_id == user_id, Task.archived.is_(False))
        .group_by(Task.priority)
        .order_by(Task.priority)
        .all()
    )

    by_status = (
        db.query(Task.status, func.count(Task.id))
        .filter(Task.user_id == user_id, Task.archived.is_(False))
        .group_by(Task.status)
        .order_by(Task.status)
        .all()
    )

    return Stats(
        total_todos=total_todos or 0,
        completed_today=completed_today or 0,
        completed_this_week=completed_this_week or 0,
        streak=compute_streak(recent_days),
        avg_completion_time=round_half_up(avg_actual),
        by_priority=[PriorityCount(priority=p, count=c) for p, c in by_priority],
        by_status=[StatusCount(status=s, count=c) for s, c in by_status],
        recent_days=[
            DailyStatRead(
                date=d.date,
                created_count=d.created_count,
                completed_count=d.completed_count,
                total_estimated_minutes=d.total_estimated_minutes,
                total_actual_minutes=d.total_actual_minutes,
            )
            for d in recent_days
        ],
    )


# --- Summary Reporter ---


def parse_iso_date(value) -> Optional[date]:
    """Strict ``YYYY-MM-DD`` parsing; anything else yields None."""
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def clamp_days(value) -> int:
    """Truncate to an int and clamp into [1, 365]; junk means the default."""
    if value is None:
        return DEFAULT_SUMMARY_DAYS
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_SUMMARY_DAYS
    if not math.isfinite(number):
        return DEFAULT_SUMMARY_DAYS
    return min(MAX_SUMMARY_DAYS, max(1, math.trunc(number)))


def resolve_range(start=None, end=None, days=None, today: Optional[date] = None) -> Tuple[date, date]:
    today = today or utcnow().date()
    end_date = parse_iso_date(end) or today
    span = clamp_days(days)
    try:
        start_date = parse_iso_date(start) or end_date - timedelta(days=span - 1)
    except OverflowError:
        # e.g. end=0001-01-01: the trailing window would start before year 1.
        end_date = today
        start_date = today - timedelta(days=span - 1)
    return start_date, end_date


def date_list(start: date, end: date) -> List[str]:
    """Every calendar date from start to end inclusive; empty if start > end."""
    return [(start + timedelta(days=i)).isoformat() for i in range((end - start).days + 1)]


def _day_key(value) -> str:
    # SQLite hands back strings, PostgreSQL hands back date objects.
    return value if isinstance(value, str) else value.isoformat()


def _minutes_bucket(samples, avg, total) -> dict:
    return {"samples": int(samples or 0), "avg": avg, "total": total}


def get_summary_report(
    db: Session,
    user_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
    days=None,
    now: Optional[datetime] = None,
) -> SummaryReport:
    """Created/completed counts and minutes over an inclusive date range."""
    now = now or utcnow()
    start_date, end_date = resolve_range(start, end, days, today=now.date())
    dates = date_list(start_date, end_date)
    start_s, end_s = start_date.isoformat(), end_date.isoformat()

    created_day = func.date(Task.created_at)
    completed_day = func.date(Task.completed_at)

    created_filters = (
        Task.user_id == user_id,
        created_day.between(start_s, end_s),
    )
    completed_filters = (
        Task.user_id == user_id,
        Task.completed.is_(True),
        Task.completed_at.isnot(None),
        completed_day.between(start_s, end_s),
    )

    def minutes_totals(column):
        return (
            db.query(func.count(column), func.avg(column), func.sum(column))
            .filter(*completed_filters, column.isnot(None))
            .one()
        )

    def minutes_by_day(column):
        rows = (
            db.query(completed_day, func.count(column), func.avg(column), func.sum(column))
            .filter(*completed_filters, column.isnot(None))
            .group_by(completed_day)
            .all()
        )
        return {_day_key(day): _minutes_bucket(samples, avg, total) for day, samples, avg, total in rows}

    created_total = db.query(func.count(Task.id)).filter(*created_filters).scalar()
    completed_total = db.query(func.count(Task.id)).filter(*completed_filters).scalar()
    actual_total = _minutes_bucket(*minutes_totals(Task.actual_minutes))
    estimated_total = _minutes_bucket(*minutes_totals(Task.estimated_minutes))

    created_by_day = {
        _day_key(day): count
        for day, count in db.query(created_day, func.count(Task.id))
        .filter(*created_filters)
        .group_by(created_day)
        .all()
    }
    completed_by_day = {
        _day_key(day): count
        for day, count in db.query(completed_day, func.count(Task.id))
        .filter(*completed_filters)
        .group_by(completed_day)
        .all()
    }
    actual_by_day = minutes_by_day(Task.actual_minutes)
    estimated_by_day = minutes_by_day(Task.estimated_minutes)

    empty = _minutes_bucket(0, None, None)
    per_day = []
    for day in dates:
        actual = actual_by_day.get(day, empty)
        estimated = estimated_by_day.get(day, empty)
        per_day.append(
            SummaryDay(
                date=day,
                **_bucket_fields(created_by_day.get(day, 0), completed_by_day.get(day, 0), actual, estimated),
            )
        )

    return SummaryReport(
        range=SummaryRange(start=start_s, end=end_s, days=len(dates)),
        totals=SummaryBucket(
            **_bucket_fields(created_total or 0, completed_total or 0, actual_total, estimated_total)
        ),
        per_day=per_day,
    )


def _bucket_fields(created: int, completed: int, actual: dict, estimated: dict) -> dict:
    return {
        "created_count": int(created or 0),
        "completed_count": int(completed or 0),
        "total_actual_minutes": round_half_up(actual["total"]),
        "avg_actual_minutes": round_half_up(actual["avg"]),
        "actual_minutes_sample_count": actual["samples"],
        "total_estimated_minutes": round_half_up(estimated["total"]),
        "avg_estimated_minutes": round_half_up(estimated["avg"]),
        "estimated_minutes_sample_count": estimated["samples"],
    }
