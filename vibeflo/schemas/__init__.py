from vibeflo.schemas.playlist import PlaylistUpdate, Track
from vibeflo.schemas.session import (
    PLACEHOLDER_SESSION_ID,
    Session,
    SessionCreate,
    SessionUpdate,
)
from vibeflo.schemas.stats import CompletionTrend, DailyActivity, ProductiveDay, Stats
from vibeflo.schemas.todo import TodoItem

__all__ = [
    "CompletionTrend",
    "DailyActivity",
    "PLACEHOLDER_SESSION_ID",
    "PlaylistUpdate",
    "ProductiveDay",
    "Session",
    "SessionCreate",
    "SessionUpdate",
    "Stats",
    "TodoItem",
    "Track",
]
