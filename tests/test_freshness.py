"""
Tests for the cache-or-refresh guard and the throttle.

Run with: pytest tests/test_freshness.py -v
"""
from unittest.mock import AsyncMock, patch

import pytest

from rsi_digest.exceptions import MalformedResponse, UpstreamUnavailable
from rsi_digest.repositories.cache_store import CacheEntry, MemoryCacheStore
from rsi_digest.services.market_data.freshness import FreshnessGuard, is_expired
from rsi_digest.services.market_data.throttle import Throttle

from conftest import HOUR_MS, LockedStore

TTL_24H = 24 * HOUR_MS


class FailingPutStore(MemoryCacheStore):
    async def put(self, key, entry):
        return False


@pytest.fixture
def guard(store, throttle, fixed_clock):
    return FreshnessGuard(store, throttle=throttle, clock=fixed_clock)


class TestIsExpired:
    """Tests for the expiry predicate."""

    def test_missing_timestamp_is_expired(self):
        assert is_expired(None, TTL_24H, 1_000) is True
        assert is_expired(None, 10 ** 12, 0) is True
        assert is_expired(0, TTL_24H, 1_000) is True

    def test_age_equal_to_ttl_is_fresh(self):
        assert is_expired(1_000, 500, 1_500) is False

    def test_age_over_ttl_is_expired(self):
        assert is_expired(1_000, 500, 1_501) is True


class TestFreshnessGuard:
    """Tests for FreshnessGuard.fetch."""

    @pytest.mark.asyncio
    async def test_fresh_hit_skips_upstream_and_throttle(self, guard, store, throttle, now_ms):
        await store.put("PRICE_ACME", CacheEntry(value=99.0, timestamp=now_ms - HOUR_MS))
        upstream = AsyncMock(return_value=123.0)

        value = await guard.fetch("PRICE_ACME", TTL_24H, upstream)

        assert value == 99.0
        upstream.assert_not_called()
        throttle.wait.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_entry_is_refreshed(self, guard, store, throttle, now_ms):
        await store.put("PRICE_ACME", CacheEntry(value=100.0, timestamp=now_ms - 30 * HOUR_MS))
        upstream = AsyncMock(return_value=101.5)

        value = await guard.fetch("PRICE_ACME", TTL_24H, upstream)

        assert value == 101.5
        upstream.assert_awaited_once()
        throttle.wait.assert_awaited_once()

        entry = await store.get("PRICE_ACME")
        assert entry.value == 101.5
        assert entry.timestamp == now_ms

    @pytest.mark.asyncio
    async def test_missing_entry_is_fetched(self, guard, store, throttle, now_ms):
        upstream = AsyncMock(return_value={"current": 50.0})

        value = await guard.fetch("RSI_WEEKLY_ACME", TTL_24H, upstream)

        assert value == {"current": 50.0}
        assert (await store.get("RSI_WEEKLY_ACME")).timestamp == now_ms
        throttle.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_entry_without_timestamp_is_refreshed(self, guard, store):
        await store.put("PRICE_ACME", CacheEntry(value=1.0, timestamp=None))
        upstream = AsyncMock(return_value=2.0)

        assert await guard.fetch("PRICE_ACME", 10 ** 12, upstream) == 2.0
        upstream.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        UpstreamUnavailable("ACME", "HTTP 503"),
        MalformedResponse("ACME", "not enough data"),
        RuntimeError("boom"),
    ])
    async def test_failure_returns_stale_value_without_touching_it(self, guard, store, now_ms, error):
        stale_ts = now_ms - 30 * HOUR_MS
        await store.put("PRICE_ACME", CacheEntry(value=100.0, timestamp=stale_ts))
        upstream = AsyncMock(side_effect=error)

        value = await guard.fetch("PRICE_ACME", TTL_24H, upstream)

        assert value == 100.0
        entry = await store.get("PRICE_ACME")
        assert entry.value == 100.0
        assert entry.timestamp == stale_ts

    @pytest.mark.asyncio
    async def test_stale_value_is_retried_on_next_call(self, guard, store, now_ms):
        await store.put("PRICE_ACME", CacheEntry(value=100.0, timestamp=now_ms - 30 * HOUR_MS))
        upstream = AsyncMock(side_effect=[UpstreamUnavailable("ACME", "timeout"), 101.0])

        assert await guard.fetch("PRICE_ACME", TTL_24H, upstream) == 100.0
        assert await guard.fetch("PRICE_ACME", TTL_24H, upstream) == 101.0
        assert upstream.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_without_cache_returns_none(self, guard, store):
        upstream = AsyncMock(side_effect=UpstreamUnavailable("ACME", "connection refused"))

        value = await guard.fetch("PRICE_ACME", TTL_24H, upstream)

        assert value is None
        assert await store.get("PRICE_ACME") is None

    @pytest.mark.asyncio
    async def test_failed_write_still_returns_value(self, throttle, fixed_clock):
        guard = FreshnessGuard(FailingPutStore(), throttle=throttle, clock=fixed_clock)

        value = await guard.fetch("PRICE_ACME", TTL_24H, AsyncMock(return_value=42.0))

        assert value == 42.0

    @pytest.mark.asyncio
    async def test_failed_read_is_treated_as_miss(self, throttle, fixed_clock):
        store = LockedStore()
        guard = FreshnessGuard(store, throttle=throttle, clock=fixed_clock)
        upstream = AsyncMock(return_value=42.0)

        value = await guard.fetch("PRICE_ACME", TTL_24H, upstream)

        assert value == 42.0
        upstream.assert_awaited_once()
        throttle.wait.assert_awaited_once()
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_failed_read_and_failed_refresh_returns_none(self, throttle, fixed_clock):
        guard = FreshnessGuard(LockedStore(), throttle=throttle, clock=fixed_clock)
        upstream = AsyncMock(side_effect=UpstreamUnavailable("ACME", "timeout"))

        assert await guard.fetch("PRICE_ACME", TTL_24H, upstream) is None

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, guard, store, now_ms):
        await store.put("PRICE_ACME", CacheEntry(value=1.0, timestamp=now_ms))
        upstream = AsyncMock(return_value=2.0)

        assert await guard.fetch("PRICE_OTHER", TTL_24H, upstream) == 2.0
        assert (await store.get("PRICE_ACME")).value == 1.0


class TestThrottle:
    """Tests for the upstream delay."""

    @pytest.mark.asyncio
    async def test_default_delay(self):
        with patch('rsi_digest.services.market_data.throttle.asyncio.sleep', new_callable=AsyncMock) as sleep:
            await Throttle().wait()
        sleep.assert_awaited_once_with(1.5)

    @pytest.mark.asyncio
    async def test_zero_delay_does_not_sleep(self):
        with patch('rsi_digest.services.market_data.throttle.asyncio.sleep', new_callable=AsyncMock) as sleep:
            await Throttle(0).wait()
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_guard_uses_real_throttle_only_on_refresh(self, store, fixed_clock, now_ms):
        guard = FreshnessGuard(store, throttle=Throttle(2.0), clock=fixed_clock)
        await store.put("PRICE_ACME", CacheEntry(value=5.0, timestamp=now_ms))

        with patch('rsi_digest.services.market_data.throttle.asyncio.sleep', new_callable=AsyncMock) as sleep:
            await guard.fetch("PRICE_ACME", TTL_24H, AsyncMock(return_value=6.0))
            sleep.assert_not_called()

            await guard.fetch("PRICE_NEW", TTL_24H, AsyncMock(return_value=6.0))
            sleep.assert_awaited_once_with(2.0)
