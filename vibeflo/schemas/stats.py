from pydantic import AliasChoices, BaseModel, Field, field_validator

_WIRE = {"populate_by_name": True, "extra": "ignore"}


class DailyActivity(BaseModel):
    count: int = 0
    total_minutes: int = Field(default=0, alias="totalMinutes")

    model_config = _WIRE


class ProductiveDay(BaseModel):
    day: str
    minutes: int = 0


class CompletionTrend(BaseModel):
    current_week: int = Field(default=0, alias="currentWeek")
    previous_week: int = Field(default=0, alias="previousWeek")
    percent_change: float = Field(default=0, alias="percentChange")

    model_config = _WIRE


class Stats(BaseModel):
    """Aggregate summary over a user's sessions.

    The three activity maps are always present, so consumers can index them
    without checking for ``None``. The backend reports focus time as
    ``totalMinutes`` and the session average as ``averageSessionMinutes``;
    both spellings are accepted.
    """

    total_sessions: int = Field(default=0, alias="totalSessions")
    completed_sessions: int = Field(default=0, alias="completedSessions")
    total_focus_time: int = Field(
        default=0,
        validation_alias=AliasChoices(
            "totalFocusTime", "totalMinutes", "totalFocusTimeMinutes", "total_focus_time"
        ),
        serialization_alias="totalFocusTime",
    )

    last_week_activity: dict[str, DailyActivity] = Field(
        default_factory=dict, alias="lastWeekActivity"
    )
    last_30_days_activity: dict[str, DailyActivity] = Field(
        default_factory=dict, alias="last30DaysActivity"
    )
    all_time_activity: dict[str, DailyActivity] = Field(
        default_factory=dict, alias="allTimeActivity"
    )

    average_session_duration: float | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "averageSessionDuration", "averageSessionMinutes", "average_session_duration"
        ),
        serialization_alias="averageSessionDuration",
    )
    most_productive_day: ProductiveDay | None = Field(default=None, alias="mostProductiveDay")
    completion_trend: CompletionTrend | None = Field(default=None, alias="completionTrend")
    current_streak: int = Field(default=0, alias="currentStreak")

    model_config = _WIRE

    @field_validator("last_week_activity", "last_30_days_activity", "all_time_activity", mode="before")
    @classmethod
    def _activity_defaults_to_empty(cls, value):
        return value or {}

    @field_validator("total_sessions", "completed_sessions", "total_focus_time", "current_streak", mode="before")
    @classmethod
    def _coerce_count(cls, value):
        # Postgres sums arrive as numeric strings
        if value is None or value == "":
            return 0
        if isinstance(value, str):
            return round(float(value))
        if isinstance(value, float):
            return round(value)
        return value

    def with_session(self, duration: int, completed: bool) -> "Stats":
        """Aggregate after one more session, applied before the server confirms it."""
        return self.model_copy(
            update={
                "total_sessions": self.total_sessions + 1,
                "completed_sessions": self.completed_sessions + (1 if completed else 0),
                "total_focus_time": self.total_focus_time + duration,
            }
        )
