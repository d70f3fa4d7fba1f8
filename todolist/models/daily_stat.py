from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional


class DailyStat(SQLModel, table=True):
    """Per-user, per-day counters of created and completed tasks.

    ``date`` is an ISO ``YYYY-MM-DD`` string so lexical order is date order.
    """
    __tablename__ = "daily_stats"
    __table_args__ = (UniqueConstraint("user_id", "date"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    date: str = Field(index=True)
    completed_count: int = Field(default=0)
    created_count: int = Field(default=0)
    total_estimated_minutes: int = Field(default=0)
    total_actual_minutes: int = Field(default=0)
