"""Market data services for RSI Digest."""

from rsi_digest.services.market_data.fetchers import InstrumentSnapshot, MarketDataFetcher
from rsi_digest.services.market_data.freshness import FreshnessGuard, is_expired
from rsi_digest.services.market_data.rsi_calculator import RSIRecord, compute_rsi_series
from rsi_digest.services.market_data.throttle import Throttle
from rsi_digest.services.market_data.ttl_policy import DataKind, ttl_ms

__all__ = [
    "InstrumentSnapshot",
    "MarketDataFetcher",
    "FreshnessGuard",
    "is_expired",
    "RSIRecord",
    "compute_rsi_series",
    "Throttle",
    "DataKind",
    "ttl_ms",
]
