import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from helpers import make_session, make_stats
from vibeflo.api.pomodoro import PomodoroAPI
from vibeflo.errors import ApiError, NetworkError
from vibeflo.schemas import Session, SessionCreate, Stats
from vibeflo.stores.stats_store import (
    LOGIN_REQUIRED_MESSAGE,
    SAVE_LOGIN_REQUIRED_MESSAGE,
    StatsStore,
    compose_error,
)


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def pomodoro():
    api = AsyncMock(spec=PomodoroAPI)
    api.get_stats.return_value = make_stats()
    api.get_sessions.return_value = [make_session(1)]
    api.create_session.return_value = make_session(2)
    return api


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def store(pomodoro, clock):
    stats_store = StatsStore(
        pomodoro,
        authenticated=True,
        min_refresh_interval=5.0,
        reconcile_delay=0,
        clock=clock,
    )
    yield stats_store
    await stats_store.close()


# ── Authentication gate ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_unauthenticated_refresh_makes_no_calls(pomodoro):
    store = StatsStore(pomodoro)

    await store.refresh_stats()

    pomodoro.get_stats.assert_not_awaited()
    pomodoro.get_sessions.assert_not_awaited()
    assert store.stats is None
    assert store.sessions == []
    assert store.loading is False
    assert store.error == LOGIN_REQUIRED_MESSAGE


@pytest.mark.asyncio
async def test_unauthenticated_add_session_makes_no_calls(pomodoro):
    store = StatsStore(pomodoro)

    await store.add_session(SessionCreate(duration=25))

    pomodoro.create_session.assert_not_awaited()
    assert store.error == SAVE_LOGIN_REQUIRED_MESSAGE
    assert store.sessions == []


@pytest.mark.asyncio
async def test_login_triggers_initial_load(pomodoro):
    store = StatsStore(pomodoro)
    assert store.loading is True

    await store.set_authenticated(True)

    assert store.stats.total_sessions == 4
    assert [s.id for s in store.sessions] == [1]
    assert store.loading is False
    assert store.error is None


@pytest.mark.asyncio
async def test_logout_clears_everything(store):
    await store.start()
    assert store.stats is not None

    await store.set_authenticated(False)

    assert store.stats is None
    assert store.sessions == []
    assert store.loading is False
    assert store.error == LOGIN_REQUIRED_MESSAGE


# ── Partial failures ─────────────────────────────────────────────────


def test_compose_error_variants():
    assert compose_error(None, None) is None
    assert compose_error("a", None) == "Statistics may be incomplete: a"
    assert compose_error(None, "b") == "Session history may be incomplete: b"
    assert compose_error("a", "b") == "Could not load all data: a and b"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "stats_fails,sessions_fails,expected_error",
    [
        (False, False, None),
        (True, False, "Statistics may be incomplete: Stats down"),
        (False, True, "Session history may be incomplete: Network Error"),
        (True, True, "Could not load all data: Stats down and Network Error"),
    ],
)
async def test_partial_failure_keeps_each_slice_independent(
    store, pomodoro, stats_fails, sessions_fails, expected_error
):
    await store.start()
    fresh_stats = make_stats(totalSessions=9)
    fresh_sessions = [make_session(5), make_session(1)]

    pomodoro.get_stats.side_effect = ApiError(500, {"message": "Stats down"}) if stats_fails else None
    pomodoro.get_stats.return_value = fresh_stats
    pomodoro.get_sessions.side_effect = NetworkError() if sessions_fails else None
    pomodoro.get_sessions.return_value = fresh_sessions

    await store.refresh_stats()

    assert store.error == expected_error
    assert store.loading is False
    assert store.stats.total_sessions == (4 if stats_fails else 9)
    assert [s.id for s in store.sessions] == ([1] if sessions_fails else [5, 1])


@pytest.mark.asyncio
async def test_failed_initial_stats_stay_unset(store, pomodoro):
    pomodoro.get_stats.side_effect = ApiError(500, {"message": "Stats down"})

    await store.start()

    assert store.stats is None
    assert [s.id for s in store.sessions] == [1]
    assert store.error == "Statistics may be incomplete: Stats down"


@pytest.mark.asyncio
async def test_unauthorized_fetch_adds_no_error_text(store, pomodoro):
    await store.start()
    pomodoro.get_stats.side_effect = ApiError(401, {"message": "Token expired"})
    pomodoro.get_sessions.side_effect = ApiError(401, {"message": "Token expired"})

    await store.refresh_stats()

    assert store.error is None
    assert store.stats.total_sessions == 4
    assert [s.id for s in store.sessions] == [1]


@pytest.mark.asyncio
async def test_unexpected_exception_reported(store, pomodoro):
    pomodoro.get_stats.side_effect = RuntimeError("boom")

    with patch("vibeflo.stores.stats_store.sentry_sdk.capture_exception") as capture:
        await store.refresh_stats()

    assert store.error == "An unexpected error occurred: boom"
    assert store.loading is False
    assert store.refresh_in_progress is False
    capture.assert_called_once()


@pytest.mark.asyncio
async def test_malformed_sessions_wait_for_the_stats_fetch(store, pomodoro):
    gate = asyncio.Event()

    async def slow_stats():
        await gate.wait()
        return make_stats(totalSessions=7)

    async def malformed_sessions():
        return [Session.model_validate({"id": None, "duration": 25})]

    pomodoro.get_stats.side_effect = slow_stats
    pomodoro.get_sessions.side_effect = malformed_sessions

    with patch("vibeflo.stores.stats_store.sentry_sdk.capture_exception") as capture:
        in_flight = asyncio.create_task(store.refresh_stats())
        for _ in range(3):
            await asyncio.sleep(0)

        assert not in_flight.done()
        assert store.refresh_in_progress is True
        assert store.loading is True

        gate.set()
        await in_flight

    assert store.stats.total_sessions == 7
    assert store.error == "Session history may be incomplete: Received malformed session history"
    assert store.refresh_in_progress is False
    assert store.loading is False
    capture.assert_not_called()


@pytest.mark.asyncio
async def test_malformed_stats_keep_cached_value(store, pomodoro):
    await store.start()

    async def malformed_stats():
        return Stats.model_validate({"totalSessions": "many"})

    pomodoro.get_stats.side_effect = malformed_stats
    pomodoro.get_sessions.return_value = [make_session(5)]

    await store.refresh_stats()

    assert store.stats.total_sessions == 4
    assert [s.id for s in store.sessions] == [5]
    assert store.error == "Statistics may be incomplete: Received malformed statistics data"


# ── Throttling ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_requests_within_interval_are_dropped(store, pomodoro, clock):
    await store.request_refresh()
    assert store.last_refresh_time == 100.0

    clock.advance(2)
    await store.request_refresh()
    assert pomodoro.get_stats.await_count == 1

    clock.advance(3)
    await store.request_refresh()
    assert pomodoro.get_stats.await_count == 2
    assert pomodoro.get_sessions.await_count == 2


@pytest.mark.asyncio
async def test_forced_refresh_ignores_interval(store, pomodoro):
    await store.refresh_stats()
    await store.refresh_stats()

    assert pomodoro.get_stats.await_count == 2
    assert pomodoro.get_sessions.await_count == 2


@pytest.mark.asyncio
async def test_overlapping_forced_refreshes_both_run(store, pomodoro):
    concurrent = 0
    peak = 0

    async def slow_stats():
        nonlocal concurrent, peak
        concurrent += 1
        peak = max(peak, concurrent)
        await asyncio.sleep(0)
        concurrent -= 1
        return make_stats()

    pomodoro.get_stats.side_effect = slow_stats

    await asyncio.gather(store.refresh_stats(), store.refresh_stats())

    assert pomodoro.get_stats.await_count == 2
    assert pomodoro.get_sessions.await_count == 2
    assert peak == 2
    assert store.refresh_in_progress is False
    assert store.loading is False


@pytest.mark.asyncio
async def test_request_during_refresh_is_dropped(store, pomodoro, clock):
    gate = asyncio.Event()

    async def slow_stats():
        await gate.wait()
        return make_stats()

    pomodoro.get_stats.side_effect = slow_stats

    in_flight = asyncio.create_task(store.refresh_stats())
    await asyncio.sleep(0)
    assert store.refresh_in_progress is True
    assert store.loading is True

    clock.advance(60)
    await store.request_refresh()

    gate.set()
    await in_flight

    assert pomodoro.get_stats.await_count == 1
    assert store.refresh_in_progress is False
    assert store.loading is False


# ── Optimistic session writes ────────────────────────────────────────


@pytest.mark.asyncio
async def test_add_session_shows_provisional_then_confirmed(store, pomodoro):
    await store.start()
    seen_while_pending = {}

    async def create(data):
        seen_while_pending["first"] = store.sessions[0]
        seen_while_pending["stats"] = store.stats
        return make_session(2)

    pomodoro.create_session.side_effect = create

    await store.add_session(SessionCreate(duration=25, task="Write report"))

    provisional = seen_while_pending["first"]
    assert provisional.is_provisional
    assert provisional.client_ref
    assert provisional.start_time and provisional.end_time
    assert seen_while_pending["stats"].total_sessions == 5
    assert seen_while_pending["stats"].completed_sessions == 4
    assert seen_while_pending["stats"].total_focus_time == 125

    assert [s.id for s in store.sessions] == [2, 1]
    assert not any(s.is_provisional for s in store.sessions)


@pytest.mark.asyncio
async def test_confirmed_session_reconciled_without_duplicates(store, pomodoro):
    await store.start()
    pomodoro.get_sessions.return_value = [make_session(2), make_session(1)]
    pomodoro.get_stats.return_value = make_stats(totalSessions=5, completedSessions=4, totalMinutes=125)

    await store.add_session(SessionCreate(duration=25))
    await store.wait_for_reconciliation()

    assert [s.id for s in store.sessions] == [2, 1]
    assert store.stats.total_sessions == 5
    assert pomodoro.get_stats.await_count == 2


@pytest.mark.asyncio
async def test_refresh_racing_confirmation_does_not_duplicate(store, pomodoro):
    await store.start()

    async def create(data):
        # A refresh lands first and already includes the new record
        pomodoro.get_sessions.return_value = [make_session(2), make_session(1)]
        await store.refresh_stats()
        return make_session(2)

    pomodoro.create_session.side_effect = create

    await store.add_session(SessionCreate(duration=25))

    ids = [s.id for s in store.sessions]
    assert ids.count(2) == 1


@pytest.mark.asyncio
async def test_failed_save_flags_session(store, pomodoro):
    await store.start()
    pomodoro.create_session.side_effect = ApiError(500, {"message": "DB down"})

    await store.add_session(SessionCreate(duration=25))
    await store.wait_for_reconciliation()

    first = store.sessions[0]
    assert first.is_provisional
    assert first.potentially_unsaved is True
    assert store.error == "Failed to save session: DB down"
    assert pomodoro.get_stats.await_count == 1


@pytest.mark.asyncio
async def test_malformed_save_reply_flags_session(store, pomodoro):
    await store.start()

    async def malformed_reply(data):
        return Session.model_validate({"id": "not-a-number"})

    pomodoro.create_session.side_effect = malformed_reply

    await store.add_session(SessionCreate(duration=25))

    first = store.sessions[0]
    assert first.is_provisional
    assert first.potentially_unsaved is True
    assert store.error == "Failed to save session: malformed response from server"


@pytest.mark.asyncio
async def test_incomplete_session_does_not_count_as_completed(store, pomodoro):
    await store.start()
    pomodoro.create_session.return_value = None

    await store.add_session(SessionCreate(duration=10, completed=False))

    assert store.stats.completed_sessions == 3
    assert store.stats.total_sessions == 5
    assert store.stats.total_focus_time == 110


@pytest.mark.asyncio
async def test_add_session_before_stats_loaded(store, pomodoro):
    await store.add_session(SessionCreate(duration=25))

    assert store.stats is None
    assert [s.id for s in store.sessions] == [2]


# ── Liveness ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fetch_resolving_after_logout_is_discarded(store, pomodoro):
    gate = asyncio.Event()

    async def slow_stats():
        await gate.wait()
        return make_stats(totalSessions=99)

    pomodoro.get_stats.side_effect = slow_stats

    in_flight = asyncio.create_task(store.refresh_stats())
    await asyncio.sleep(0)
    await store.set_authenticated(False)
    gate.set()
    await in_flight

    assert store.stats is None
    assert store.sessions == []
    assert store.error == LOGIN_REQUIRED_MESSAGE


@pytest.mark.asyncio
async def test_closed_store_ignores_results(store, pomodoro):
    await store.close()

    await store.refresh_stats()

    assert store.stats is None


@pytest.mark.asyncio
async def test_listeners_notified_until_unsubscribed(store):
    loading_states = []
    unsubscribe = store.subscribe(lambda s: loading_states.append(s.loading))

    await store.start()
    assert loading_states[0] is True
    assert loading_states[-1] is False

    unsubscribe()
    count = len(loading_states)
    await store.refresh_stats()
    assert len(loading_states) == count
