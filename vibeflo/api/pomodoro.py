import logging

from vibeflo.api.base import ResourceAPI, require_numeric_id
from vibeflo.schemas.session import Session, SessionCreate, SessionUpdate
from vibeflo.schemas.stats import Stats
from vibeflo.schemas.todo import TodoItem

logger = logging.getLogger(__name__)


class PomodoroAPI(ResourceAPI):
    """Sessions, aggregate stats and the todo list behind the timer."""

    async def get_stats(self) -> Stats:
        data = await self.gateway.retry_policy.run(
            lambda: self.gateway.get("/pomodoro/stats"), label="GET /pomodoro/stats"
        )
        # A misrouted response decodes to an empty list
        return Stats.model_validate(data if isinstance(data, dict) else {})

    async def get_sessions(self) -> list[Session]:
        rows = await self._fetch_list("/pomodoro/sessions")
        return [Session.model_validate(row) for row in rows if isinstance(row, dict)]

    async def create_session(self, data: SessionCreate) -> Session | None:
        created = await self.gateway.post(
            "/pomodoro/sessions", json=data.model_dump(exclude_none=True)
        )
        if isinstance(created, dict) and created.get("id") is not None:
            return Session.model_validate(created)
        logger.warning("Session create returned no record: %r", created)
        return None

    async def update_session(self, session_id, data: SessionUpdate) -> Session:
        session_id = require_numeric_id(session_id, "session")
        updated = await self.gateway.put(
            f"/pomodoro/sessions/{session_id}", json=data.model_dump(exclude_unset=True)
        )
        return Session.model_validate(updated)

    async def delete_session(self, session_id) -> dict | None:
        session_id = require_numeric_id(session_id, "session")
        return await self.gateway.delete(f"/pomodoro/sessions/{session_id}")

    async def get_todos(self) -> list[TodoItem]:
        rows = await self._fetch_list("/pomodoro/todos")
        return [TodoItem.model_validate(row) for row in rows if isinstance(row, dict)]

    async def save_todos(self, todos: list[TodoItem]) -> list | dict | None:
        return await self.gateway.post(
            "/pomodoro/todos", json={"todos": [t.model_dump(exclude_none=True) for t in todos]}
        )

    async def update_todo(self, todo_id: str, data: dict) -> dict:
        return await self.gateway.put(f"/pomodoro/todos/{todo_id}", json=data)

    async def delete_todo(self, todo_id: str) -> dict | None:
        return await self.gateway.delete(f"/pomodoro/todos/{todo_id}")
