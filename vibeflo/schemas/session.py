from datetime import datetime

from pydantic import BaseModel, Field, model_validator

PLACEHOLDER_SESSION_ID = -1
DEFAULT_TASK = "Completed Pomodoro"


class SessionCreate(BaseModel):
    duration: int = Field(gt=0)  # minutes
    task: str = DEFAULT_TASK
    completed: bool = True
    start_time: str | None = None
    end_time: str | None = None


class SessionUpdate(BaseModel):
    duration: int | None = Field(default=None, gt=0)
    task: str | None = None
    completed: bool | None = None
    end_time: str | None = None


class Session(BaseModel):
    id: int
    duration: int = 0
    task: str = DEFAULT_TASK
    completed: bool = True
    created_at: str = ""
    start_time: str | None = None
    end_time: str | None = None
    task_name: str | None = None

    # Client-side bookkeeping, never sent to the server
    potentially_unsaved: bool = False
    client_ref: str | None = None

    model_config = {"extra": "ignore"}

    @model_validator(mode="before")
    @classmethod
    def _fill_server_gaps(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("duration") and data.get("start_time") and data.get("end_time"):
            data["duration"] = _minutes_between(data["start_time"], data["end_time"])
        if data.get("task") is None:
            data["task"] = data.get("task_name") or DEFAULT_TASK
        if data.get("completed") is None:
            data["completed"] = True
        if data.get("duration") is None:
            data["duration"] = 0
        return data

    @property
    def is_provisional(self) -> bool:
        """True until the server has confirmed this record."""
        return self.id == PLACEHOLDER_SESSION_ID


def _minutes_between(start: str, end: str) -> int:
    try:
        delta = _parse_iso(end) - _parse_iso(start)
    except (TypeError, ValueError):
        return 0
    return max(0, round(delta.total_seconds() / 60))


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
