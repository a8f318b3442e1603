"""Data kinds and their cache expiry rules.

Each DataKind binds a cache-key prefix, the upstream range/interval and a TTL
strategy. The TTL of the RSI kinds depends on the calendar and is recomputed
against the current time on every freshness check.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

import pytz

from rsi_digest.config import (
    PRICE_TTL_HOURS, PRICE_RANGE, PRICE_INTERVAL,
    RSI_RANGE, RSI_WEEKLY_INTERVAL, RSI_MONTHLY_INTERVAL
)
from rsi_digest.services.market_data.calendar import (
    ms_until_weekly_anchor, ms_until_monthly_anchor
)

PRICE_TTL_MS = PRICE_TTL_HOURS * 60 * 60 * 1000


class DataKind(Enum):
    PRICE = "PRICE"
    RSI_WEEKLY = "RSI_WEEKLY"
    RSI_MONTHLY = "RSI_MONTHLY"

    @property
    def is_rsi(self) -> bool:
        return self is not DataKind.PRICE

    @property
    def upstream_range(self) -> str:
        return PRICE_RANGE if self is DataKind.PRICE else RSI_RANGE

    @property
    def upstream_interval(self) -> str:
        return _INTERVALS[self]

    def cache_key(self, symbol: str) -> str:
        """Cache key for this kind and instrument, e.g. ``RSI_WEEKLY_BTC-USD``."""
        return f"{self.value}_{symbol.upper()}"


_INTERVALS = {
    DataKind.PRICE: PRICE_INTERVAL,
    DataKind.RSI_WEEKLY: RSI_WEEKLY_INTERVAL,
    DataKind.RSI_MONTHLY: RSI_MONTHLY_INTERVAL,
}


def ttl_ms(kind: DataKind, now: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> int:
    """
    Return the current time-to-live of a data kind in milliseconds.

    Args:
        kind: Data kind being looked up
        now: Aware current time
        tz: Timezone of the calendar anchors (default: configured timezone)
    """
    if kind is DataKind.PRICE:
        return PRICE_TTL_MS
    if kind is DataKind.RSI_WEEKLY:
        return ms_until_weekly_anchor(now, tz)
    if kind is DataKind.RSI_MONTHLY:
        return ms_until_monthly_anchor(now, tz)
    raise ValueError(f"Unknown data kind: {kind!r}")
