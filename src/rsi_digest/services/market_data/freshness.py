"""
Cache-or-refresh with stale fallback.

A lookup returns the cached value while it is fresh. Once it has expired the
guard throttles, calls the upstream once and stores the result. When that call
fails the previous value is returned as-is: its timestamp is left untouched so
it stays expired and the next lookup tries the upstream again.
"""
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import pytz

from rsi_digest.exceptions import MarketDataError
from rsi_digest.repositories.cache_store import CacheEntry, CacheStoreBase
from rsi_digest.services.market_data.throttle import Throttle

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
UpstreamCall = Callable[[], Awaitable[Any]]


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def to_epoch_ms(moment: datetime) -> int:
    return int(round(moment.timestamp() * 1000))


def is_expired(timestamp: Optional[int], ttl_ms: int, now_ms: int) -> bool:
    """A missing timestamp is always expired; otherwise expired once age > ttl."""
    if not timestamp:
        return True
    return now_ms - timestamp > ttl_ms


class FreshnessGuard:
    """Serve fresh cache entries, refresh expired ones, fall back to stale ones."""

    def __init__(
        self,
        store: CacheStoreBase,
        throttle: Optional[Throttle] = None,
        clock: Clock = utc_now
    ):
        self.store = store
        self.throttle = throttle if throttle is not None else Throttle()
        self.clock = clock

    async def fetch(self, key: str, ttl_ms: int, upstream_call: UpstreamCall) -> Optional[Any]:
        """
        Return the value for ``key``, refreshing it from upstream if expired.

        Args:
            key: Cache key
            ttl_ms: Time-to-live of the cached value in milliseconds
            upstream_call: Coroutine function producing a fresh, validated value.
                It raises MarketDataError (or anything else) on failure.

        Returns:
            The fresh or cached value, the stale value when the refresh failed,
            or None when no value has ever been stored.
        """
        try:
            cached = await self.store.get(key)
        except Exception as e:
            logger.error(f"Cache read failed for {key}, treating as a miss: {e}", exc_info=True)
            cached = None

        if cached is not None and not is_expired(cached.timestamp, ttl_ms, to_epoch_ms(self.clock())):
            logger.debug(f"Cache hit for {key}")
            return cached.value

        await self.throttle.wait()

        try:
            value = await upstream_call()
        except MarketDataError as e:
            logger.warning(f"Upstream refresh failed for {key}: {e}")
            return self._fallback(key, cached)
        except Exception as e:
            logger.error(f"Unexpected error refreshing {key}: {e}", exc_info=True)
            return self._fallback(key, cached)

        entry = CacheEntry(value=value, timestamp=to_epoch_ms(self.clock()))
        if not await self.store.put(key, entry):
            logger.warning(f"Refreshed {key} but could not persist it")
        else:
            logger.info(f"Refreshed {key}")

        return value

    def _fallback(self, key: str, cached: Optional[CacheEntry]) -> Optional[Any]:
        if cached is None:
            logger.warning(f"No data available for {key}")
            return None

        logger.info(f"Serving stale value for {key}")
        return cached.value
