"""Unit tests for the Redis sliding-window rate limiter (fakeredis + fixed clock)."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from coordination.adapters.rate_limit.sliding_window import (
    SLIDING_WINDOW_SCRIPT,
    RedisSlidingWindowRateLimiter,
)
from coordination.adapters.store.base import AbstractSharedStore
from coordination.core.errors import StoreUnavailableError, ValidationAppError


def _limiter(store, *, clock, permit_limit=3, window_seconds=5.0, **kwargs):
    return RedisSlidingWindowRateLimiter(
        store,
        permit_limit=permit_limit,
        window_seconds=window_seconds,
        clock=clock,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_simultaneous_burst_admits_up_to_limit(store) -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(store, clock=clock)

    results = [await limiter.try_admit("10.0.0.1") for _ in range(5)]

    assert [r.allowed for r in results] == [True, True, True, False, False]
    assert [r.remaining for r in results[:3]] == [2, 1, 0]
    for denied in results[3:]:
        assert denied.remaining == 0
        assert denied.retry_after_seconds == pytest.approx(5.0)


@pytest.mark.asyncio
async def test_admitted_results_have_no_retry_hint(store) -> None:
    limiter = _limiter(store, clock=Mock(return_value=1000.0))

    result = await limiter.try_admit("k")

    assert result.allowed is True
    assert result.retry_after_seconds is None
    assert result.degraded is False
    assert result.limit == 3


@pytest.mark.asyncio
async def test_retry_hint_tracks_oldest_admission(store) -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(store, clock=clock, permit_limit=2, window_seconds=10)

    assert (await limiter.try_admit("k")).allowed
    clock.return_value = 1004.0
    assert (await limiter.try_admit("k")).allowed

    clock.return_value = 1008.0
    denied = await limiter.try_admit("k")

    assert denied.allowed is False
    assert denied.retry_after_seconds == pytest.approx(2.0)


@pytest.mark.asyncio
async def test_waiting_retry_after_frees_a_slot(store) -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(store, clock=clock, permit_limit=1, window_seconds=5)

    assert (await limiter.try_admit("k")).allowed
    clock.return_value = 1001.5
    denied = await limiter.try_admit("k")
    assert denied.allowed is False

    clock.return_value = 1001.5 + denied.retry_after_seconds
    assert (await limiter.try_admit("k")).allowed


@pytest.mark.asyncio
async def test_window_slides_instead_of_resetting(store) -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(store, clock=clock, permit_limit=2, window_seconds=10)

    await limiter.try_admit("k")          # t=1000
    clock.return_value = 1006.0
    await limiter.try_admit("k")          # t=1006

    # A fixed window starting at 1000 would reset at 1010 and admit two more.
    clock.return_value = 1010.5
    assert (await limiter.try_admit("k")).allowed is True
    assert (await limiter.try_admit("k")).allowed is False


@pytest.mark.asyncio
async def test_no_interval_exceeds_the_limit(store) -> None:
    """Admissions within any trailing window never exceed the permit limit."""
    clock = Mock(return_value=0.0)
    limiter = _limiter(store, clock=clock, permit_limit=3, window_seconds=1.0)

    admitted_at = []
    # Steps of 1/8 s are exact in binary, so ms timestamps carry no rounding.
    for step in range(60):
        now = 1000.0 + step * 0.125
        clock.return_value = now
        if (await limiter.try_admit("k")).allowed:
            admitted_at.append(now)

    for t in admitted_at:
        in_window = [a for a in admitted_at if t - 1.0 < a <= t]
        assert len(in_window) <= 3
    assert len(admitted_at) >= 15


@pytest.mark.asyncio
async def test_identities_are_isolated(store) -> None:
    limiter = _limiter(store, clock=Mock(return_value=1000.0), permit_limit=1)

    assert (await limiter.try_admit("a")).allowed is True
    assert (await limiter.try_admit("a")).allowed is False
    assert (await limiter.try_admit("b")).allowed is True


@pytest.mark.asyncio
async def test_policies_use_separate_windows(store) -> None:
    clock = Mock(return_value=1000.0)
    login = _limiter(store, clock=clock, permit_limit=1, policy="login")
    search = _limiter(store, clock=clock, permit_limit=1, policy="search")

    assert (await login.try_admit("a")).allowed is True
    assert (await search.try_admit("a")).allowed is True
    assert login.window_key("a") != search.window_key("a")


@pytest.mark.asyncio
async def test_per_call_policy_override(store) -> None:
    limiter = _limiter(store, clock=Mock(return_value=1000.0), permit_limit=1)

    result = await limiter.try_admit("k", permit_limit=5)

    assert result.allowed is True
    assert result.limit == 5
    assert result.remaining == 4


@pytest.mark.asyncio
async def test_fractional_window_rounds_up_to_whole_milliseconds(store) -> None:
    limiter = _limiter(
        store, clock=Mock(return_value=1000.0), permit_limit=1, window_seconds=1.0005
    )

    await limiter.try_admit("k")
    denied = await limiter.try_admit("k")

    assert denied.retry_after_seconds == pytest.approx(1.001)


@pytest.mark.asyncio
async def test_script_reports_full_window_when_set_is_empty(store) -> None:
    result = await store.execute_atomic(
        SLIDING_WINDOW_SCRIPT,
        ["rate-limit:sliding:empty"],
        [1_000_000, 995_000, 0, 5000, "1000000:member"],
    )

    assert [int(v) for v in result] == [0, 5000]


@pytest.mark.asyncio
async def test_window_set_expires_after_inactivity(store, redis_client) -> None:
    limiter = _limiter(store, clock=Mock(return_value=1000.0), window_seconds=5)

    await limiter.try_admit("k")

    ttl_ms = await redis_client.pttl(limiter.window_key("k"))
    assert 0 < ttl_ms <= 5000


@pytest.mark.asyncio
async def test_same_millisecond_admissions_are_distinct_members(store, redis_client) -> None:
    limiter = _limiter(store, clock=Mock(return_value=1000.0), permit_limit=10)

    for _ in range(4):
        await limiter.try_admit("k")

    assert await redis_client.zcard(limiter.window_key("k")) == 4


@pytest.mark.asyncio
async def test_concurrent_admissions_respect_limit(store) -> None:
    limiter = _limiter(store, clock=Mock(return_value=1000.0), permit_limit=3)

    results = await asyncio.gather(*(limiter.try_admit("k") for _ in range(20)))

    assert sum(1 for r in results if r.allowed) == 3
    assert sorted(r.remaining for r in results if r.allowed) == [0, 1, 2]


class TestFailurePolicy:
    @staticmethod
    def _failing_store() -> AbstractSharedStore:
        store = AsyncMock(spec=AbstractSharedStore)
        store.execute_atomic.side_effect = StoreUnavailableError(
            code="store_unavailable", message="connection refused"
        )
        return store

    @pytest.mark.asyncio
    async def test_fail_open_admits_and_flags_degraded(self, caplog) -> None:
        limiter = _limiter(self._failing_store(), clock=Mock(return_value=1000.0))

        with caplog.at_level("WARNING"):
            result = await limiter.try_admit("k")

        assert result.allowed is True
        assert result.degraded is True
        assert "rate_limit.store_unavailable" in caplog.messages

    @pytest.mark.asyncio
    async def test_fail_closed_denies_with_window_hint(self) -> None:
        limiter = _limiter(
            self._failing_store(),
            clock=Mock(return_value=1000.0),
            window_seconds=5,
            fail_open=False,
        )

        result = await limiter.try_admit("k")

        assert result.allowed is False
        assert result.degraded is True
        assert result.retry_after_seconds == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"permit_limit": 0, "window_seconds": 5},
        {"permit_limit": 1, "window_seconds": 0},
        {"permit_limit": 1, "window_seconds": -1},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValidationAppError):
        RedisSlidingWindowRateLimiter(AsyncMock(spec=AbstractSharedStore), **kwargs)


@pytest.mark.asyncio
async def test_invalid_try_admit_args_never_reach_store() -> None:
    store = AsyncMock(spec=AbstractSharedStore)
    limiter = RedisSlidingWindowRateLimiter(store)

    with pytest.raises(ValidationAppError):
        await limiter.try_admit("")
    with pytest.raises(ValidationAppError):
        await limiter.try_admit("k", permit_limit=0)
    with pytest.raises(ValidationAppError):
        await limiter.try_admit("k", window_seconds=0)

    store.execute_atomic.assert_not_called()
