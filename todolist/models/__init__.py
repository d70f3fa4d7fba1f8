from .task import Task, TaskStatus, TaskTag, RepeatType
from .user import User
from .tag import Tag, DEFAULT_TAG_COLOR
from .subtask import Subtask
from .comment import Comment
from .daily_stat import DailyStat

# Export all models for easy importing
__all__ = [
    "Task",
    "TaskStatus",
    "TaskTag",
    "RepeatType",
    "User",
    "Tag",
    "DEFAULT_TAG_COLOR",
    "Subtask",
    "Comment",
    "DailyStat",
]
