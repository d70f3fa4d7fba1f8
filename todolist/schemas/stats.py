from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialized with camelCase keys; still constructible by field name."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PriorityCount(CamelModel):
    priority: int
    count: int


class StatusCount(CamelModel):
    status: str
    count: int


class DailyStatRead(CamelModel):
    date: str
    created_count: int
    completed_count: int
    total_estimated_minutes: int
    total_actual_minutes: int


class Stats(CamelModel):
    total_todos: int = 0
    completed_today: int = 0
    completed_this_week: int = 0
    streak: int = 0
    avg_completion_time: int = 0
    by_priority: List[PriorityCount] = []
    by_status: List[StatusCount] = []
    recent_days: List[DailyStatRead] = []


class SummaryBucket(CamelModel):
    created_count: int = 0
    completed_count: int = 0
    total_actual_minutes: int = 0
    avg_actual_minutes: int = 0
    actual_minutes_sample_count: int = 0
    total_estimated_minutes: int = 0
    avg_estimated_minutes: int = 0
    estimated_minutes_sample_count: int = 0


class SummaryDay(SummaryBucket):
    date: str


class SummaryRange(CamelModel):
    start: str
    end: str
    days: int


class SummaryReport(CamelModel):
    range: SummaryRange
    totals: SummaryBucket
    per_day: List[SummaryDay]
