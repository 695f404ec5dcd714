"""Shared builders for the test suite."""

import httpx

from vibeflo.schemas.session import Session
from vibeflo.schemas.stats import Stats


class RecordingBackend:
    """httpx.MockTransport handler that records requests and replays responses.

    Routes are keyed by ``(method, path)``; a route value is either an
    ``httpx.Response``, an exception instance to raise, a list of those
    consumed in order, or a callable taking the request.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], object] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responses) -> None:
        self.routes[(method, path)] = list(responses) if len(responses) > 1 else responses[0]

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route) and not isinstance(route, httpx.Response):
            route = route(request)
        if isinstance(route, BaseException):
            raise route
        return route


def make_stats(**overrides) -> Stats:
    payload = {
        "totalSessions": 4,
        "completedSessions": 3,
        "totalMinutes": 100,
        "lastWeekActivity": {"2026-10-12": {"count": 2, "totalMinutes": 50}},
    }
    payload.update(overrides)
    return Stats.model_validate(payload)


def make_session(session_id: int, duration: int = 25, completed: bool = True) -> Session:
    return Session(
        id=session_id,
        duration=duration,
        task="Write report",
        completed=completed,
        created_at="2026-10-12T09:00:00+00:00",
    )
