import asyncio
import contextlib
import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import sentry_sdk
from pydantic import ValidationError

from vibeflo.api.pomodoro import PomodoroAPI
from vibeflo.errors import ApiError, GatewayError
from vibeflo.schemas.session import PLACEHOLDER_SESSION_ID, Session, SessionCreate
from vibeflo.schemas.stats import Stats

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_MESSAGE = "Please log in to view your statistics."
SAVE_LOGIN_REQUIRED_MESSAGE = "Please log in to save sessions."
MALFORMED_STATS_MESSAGE = "Received malformed statistics data"
MALFORMED_SESSIONS_MESSAGE = "Received malformed session history"
MALFORMED_SESSION_REPLY = "malformed response from server"

Listener = Callable[["StatsStore"], None]


def compose_error(stats_error: str | None, sessions_error: str | None) -> str | None:
    """Describe which of the two backing resources could not be loaded."""
    if stats_error and sessions_error:
        return f"Could not load all data: {stats_error} and {sessions_error}"
    if stats_error:
        return f"Statistics may be incomplete: {stats_error}"
    if sessions_error:
        return f"Session history may be incomplete: {sessions_error}"
    return None


class StatsStore:
    """Session history and aggregate stats for the signed-in user.

    Holds four read-only slices (``stats``, ``sessions``, ``loading``,
    ``error``) and never raises to its callers on network, HTTP or partial
    failures; those end up in ``error`` instead. Stats and sessions are fetched
    independently so one failing leaves the other's fresh data in place, and
    the failing slice keeps whatever it held before.

    Every authentication change or ``close()`` bumps a generation counter;
    fetches started under an older generation never write state.
    """

    def __init__(
        self,
        pomodoro: PomodoroAPI,
        *,
        authenticated: bool = False,
        min_refresh_interval: float = 5.0,
        reconcile_delay: float | None = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.pomodoro = pomodoro
        self.min_refresh_interval = min_refresh_interval
        self.reconcile_delay = reconcile_delay
        self._clock = clock

        self._stats: Stats | None = None
        self._sessions: list[Session] = []
        self._loading = True
        self._error: str | None = None

        self._authenticated = authenticated
        self._active_refreshes = 0
        self._last_refresh: float | None = None
        self._generation = 0
        self._closed = False
        self._listeners: list[Listener] = []
        self._reconcile_task: asyncio.Task | None = None

    # ── Read-only state ──────────────────────────────────────────────

    @property
    def stats(self) -> Stats | None:
        return self._stats

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def refresh_in_progress(self) -> bool:
        return self._active_refreshes > 0

    @property
    def last_refresh_time(self) -> float | None:
        return self._last_refresh

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(store)`` after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        if self._closed:
            return
        for name, value in changes.items():
            setattr(self, f"_{name}", value)
        for listener in list(self._listeners):
            listener(self)

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        """Initial load; not subject to refresh throttling."""
        generation = self._generation
        if not self._authenticated:
            logger.info("User not authenticated, clearing stats")
            self._update(stats=None, sessions=[], loading=False, error=LOGIN_REQUIRED_MESSAGE)
            return

        logger.info("Authentication detected, fetching stats")
        try:
            self._update(loading=True)
            error = await self._load_all(generation)
            if generation == self._generation:
                self._update(error=error, loading=False)
        except Exception as exc:
            logger.exception("Unexpected error in initial stats fetch")
            sentry_sdk.capture_exception(exc)
            if generation == self._generation:
                self._update(error=f"An unexpected error occurred: {exc}", loading=False)

    async def set_authenticated(self, authenticated: bool) -> None:
        if authenticated == self._authenticated:
            return
        self._authenticated = authenticated
        self._generation += 1
        # Not awaited: this can run inside the reconcile refresh's own 401 handling
        self._cancel_reconcile()

        # Drop the previous user's data before anything else renders
        self._update(stats=None, sessions=[])
        await self.start()

    async def close(self) -> None:
        self._generation += 1
        task = self._cancel_reconcile()
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._closed = True
        self._listeners.clear()

    # ── Refresh ──────────────────────────────────────────────────────

    async def refresh_stats(self) -> None:
        """Forced refresh: bypasses the in-progress and interval throttles."""
        logger.info("Force refresh requested")
        await self._refresh(force=True)

    async def request_refresh(self) -> None:
        """Throttled refresh for automatic triggers."""
        await self._refresh(force=False)

    async def _refresh(self, force: bool) -> None:
        if not self._authenticated:
            logger.info("Not authenticated, skipping stats refresh")
            self._update(stats=None, sessions=[], loading=False, error=LOGIN_REQUIRED_MESSAGE)
            return

        if not force:
            if self.refresh_in_progress:
                logger.info("Stats refresh already in progress, skipping")
                return
            if self._last_refresh is not None:
                elapsed = self._clock() - self._last_refresh
                if elapsed < self.min_refresh_interval:
                    logger.info("Skipping refresh, last refresh was %.1fs ago", elapsed)
                    return

        generation = self._generation
        self._active_refreshes += 1
        self._last_refresh = self._clock()
        try:
            self._update(loading=True, error=None)
            error = await self._load_all(generation)
            if generation == self._generation:
                self._update(error=error)
        except Exception as exc:
            logger.exception("Unexpected error in stats refresh")
            sentry_sdk.capture_exception(exc)
            if generation == self._generation:
                self._update(error=f"An unexpected error occurred: {exc}")
        finally:
            self._active_refreshes -= 1
            if generation == self._generation:
                self._update(loading=False)

    async def _load_all(self, generation: int) -> str | None:
        """Run both loaders until each has settled, then compose their errors."""
        results = await asyncio.gather(
            self._load_stats(generation),
            self._load_sessions(generation),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return compose_error(*results)

    async def _load_stats(self, generation: int) -> str | None:
        try:
            stats = await self.pomodoro.get_stats()
        except GatewayError as exc:
            if isinstance(exc, ApiError) and exc.is_unauthorized:
                logger.info("401 fetching stats, keeping cached stats without an error")
                return None
            logger.warning("Error fetching stats: %s", exc)
            return str(exc) or "Failed to load statistics data"
        except ValidationError as exc:
            logger.warning("Malformed stats payload: %s", exc)
            return MALFORMED_STATS_MESSAGE

        if generation == self._generation:
            self._update(stats=stats)
        return None

    async def _load_sessions(self, generation: int) -> str | None:
        try:
            sessions = await self.pomodoro.get_sessions()
        except GatewayError as exc:
            if isinstance(exc, ApiError) and exc.is_unauthorized:
                logger.info("401 fetching sessions, keeping cached sessions without an error")
                return None
            logger.warning("Error fetching sessions: %s", exc)
            return str(exc) or "Failed to load session history"
        except ValidationError as exc:
            logger.warning("Malformed sessions payload: %s", exc)
            return MALFORMED_SESSIONS_MESSAGE

        if generation == self._generation:
            self._update(sessions=sessions)
        return None

    # ── Optimistic writes ────────────────────────────────────────────

    async def add_session(self, data: SessionCreate) -> None:
        """Record a session, showing it before the server confirms it.

        The provisional record carries the placeholder id and a correlation
        id. On confirmation it is swapped for the server's record and a
        forced refresh is scheduled to pick up authoritative aggregates. On
        failure it stays in the list flagged ``potentially_unsaved``.
        """
        if not self._authenticated:
            self._update(error=SAVE_LOGIN_REQUIRED_MESSAGE)
            return

        generation = self._generation
        try:
            now = datetime.now(timezone.utc).isoformat()
            provisional = Session(
                id=PLACEHOLDER_SESSION_ID,
                client_ref=uuid.uuid4().hex,
                duration=data.duration,
                task=data.task,
                completed=data.completed,
                created_at=now,
                start_time=data.start_time or now,
                end_time=data.end_time or now,
            )

            changes = {"error": None, "sessions": [provisional, *self._sessions]}
            if self._stats is not None:
                changes["stats"] = self._stats.with_session(data.duration, data.completed)
            self._update(**changes)

            try:
                confirmed = await self.pomodoro.create_session(data)
            except (GatewayError, ValidationError) as exc:
                logger.warning("Error recording session: %s", exc)
                reason = MALFORMED_SESSION_REPLY if isinstance(exc, ValidationError) else exc
                if generation == self._generation:
                    self._mark_unsaved(provisional.client_ref, f"Failed to save session: {reason}")
                return

            logger.info("Session saved")
            if generation != self._generation:
                return
            if confirmed is not None:
                self._confirm(provisional.client_ref, confirmed)
            self._schedule_reconcile()
        except Exception as exc:
            logger.exception("Error in add_session")
            sentry_sdk.capture_exception(exc)
            if generation == self._generation:
                self._update(error=f"An error occurred while adding the session: {exc}")

    def _confirm(self, client_ref: str, confirmed: Session) -> None:
        sessions = [s for s in self._sessions if s.id != confirmed.id]
        if any(s.client_ref == client_ref for s in sessions):
            sessions = [confirmed if s.client_ref == client_ref else s for s in sessions]
        else:
            # a refresh replaced the list while the save was in flight
            sessions.insert(0, confirmed)
        self._update(sessions=sessions)

    def _mark_unsaved(self, client_ref: str, message: str) -> None:
        sessions = [
            s.model_copy(update={"potentially_unsaved": True}) if s.client_ref == client_ref else s
            for s in self._sessions
        ]
        self._update(sessions=sessions, error=message)

    # ── Reconciliation ───────────────────────────────────────────────

    def _schedule_reconcile(self) -> None:
        if self.reconcile_delay is None:
            return
        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_task.cancel()
        self._reconcile_task = asyncio.create_task(self._reconcile_after(self.reconcile_delay))

    async def _reconcile_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.refresh_stats()

    async def wait_for_reconciliation(self) -> None:
        """Wait for a pending reconciling refresh, if one is scheduled."""
        task = self._reconcile_task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _cancel_reconcile(self) -> asyncio.Task | None:
        task = self._reconcile_task
        self._reconcile_task = None
        if task is None or task.done():
            return None
        task.cancel()
        return task
