"""rsi_digest.services.market_data.fetchers

Price and RSI lookups for instruments, each going through the FreshnessGuard.

- Price: last numeric close of the 5-day daily series (24h cache)
- Weekly/monthly RSI: RSI14 over 5 years of weekly/monthly closes, cached
  until the next calendar anchor

Instruments are always processed one after another; the throttle in front
of each upstream call is what keeps the request rate polite.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytz

from rsi_digest.config import DEFAULT_TIMEZONE, DEFAULT_RSI_PERIOD, MIN_RSI_CLOSES
from rsi_digest.exceptions import MalformedResponse
from rsi_digest.repositories.cache_store import CacheStoreBase
from rsi_digest.repositories.instrument_catalog import Instrument, InstrumentCatalog
from rsi_digest.services.market_data.freshness import (
    Clock, FreshnessGuard, to_epoch_ms, utc_now
)
from rsi_digest.services.market_data.providers.base import ChartProviderBase
from rsi_digest.services.market_data.rsi_calculator import RSIRecord, latest_rsi_record
from rsi_digest.services.market_data.throttle import Throttle
from rsi_digest.services.market_data.ttl_policy import DataKind, ttl_ms

logger = logging.getLogger(__name__)


@dataclass
class InstrumentSnapshot:
    """Everything known about one instrument for a digest."""

    symbol: str
    price: Optional[float]
    weekly: Optional[RSIRecord]
    monthly: Optional[RSIRecord]
    instrument: Optional[Instrument] = None

    @property
    def complete(self) -> bool:
        return self.price is not None and self.weekly is not None and self.monthly is not None


def last_numeric_close(closes: List[Optional[float]]) -> Optional[float]:
    """Scan from the most recent close backwards and return the first number."""
    for value in reversed(closes):
        if value is not None:
            return value
    return None


class MarketDataFetcher:
    """Cached price and RSI lookups for instruments."""

    def __init__(
        self,
        store: CacheStoreBase,
        provider: ChartProviderBase,
        throttle: Optional[Throttle] = None,
        catalog: Optional[InstrumentCatalog] = None,
        clock: Clock = utc_now,
        timezone: Optional[pytz.BaseTzInfo] = None,
        rsi_period: int = DEFAULT_RSI_PERIOD
    ):
        self.provider = provider
        self.catalog = catalog
        self.clock = clock
        self.timezone = timezone or pytz.timezone(DEFAULT_TIMEZONE)
        self.rsi_period = rsi_period
        self.guard = FreshnessGuard(store, throttle=throttle, clock=clock)

    def _ttl(self, kind: DataKind) -> int:
        return ttl_ms(kind, self.clock(), self.timezone)

    async def get_price(self, symbol: str) -> Optional[float]:
        """Last close of a symbol, or None if it was never retrieved."""
        symbol = symbol.upper()
        kind = DataKind.PRICE

        async def refresh() -> float:
            closes = await self.provider.get_closes(symbol, kind.upstream_range, kind.upstream_interval)
            price = last_numeric_close(closes)
            if price is None:
                raise MalformedResponse(symbol, "no valid closing price")
            return price

        return await self.guard.fetch(kind.cache_key(symbol), self._ttl(kind), refresh)

    async def get_rsi(self, symbol: str, kind: DataKind) -> Optional[RSIRecord]:
        """
        Current and previous RSI of a symbol on the weekly or monthly timeframe.

        Args:
            symbol: Yahoo Finance symbol
            kind: DataKind.RSI_WEEKLY or DataKind.RSI_MONTHLY

        Returns:
            RSIRecord, or None if no RSI was ever computed for this symbol
        """
        if not kind.is_rsi:
            raise ValueError(f"{kind} is not an RSI data kind")

        symbol = symbol.upper()

        async def refresh() -> Dict[str, Any]:
            raw = await self.provider.get_closes(symbol, kind.upstream_range, kind.upstream_interval)
            closes = [c for c in raw if c is not None]

            if len(closes) < MIN_RSI_CLOSES:
                raise MalformedResponse(
                    symbol,
                    f"not enough data for {kind.value} ({len(closes)} closes, need {MIN_RSI_CLOSES})"
                )

            record = latest_rsi_record(closes, to_epoch_ms(self.clock()), self.rsi_period)
            if record is None:
                raise MalformedResponse(symbol, f"RSI{self.rsi_period} undefined for {kind.value}")
            return record.to_dict()

        value = await self.guard.fetch(kind.cache_key(symbol), self._ttl(kind), refresh)
        return RSIRecord.from_dict(value) if value is not None else None

    async def get_snapshot(self, symbol: str) -> InstrumentSnapshot:
        """Weekly RSI, monthly RSI and price of one instrument."""
        symbol = symbol.upper()

        weekly = await self.get_rsi(symbol, DataKind.RSI_WEEKLY)
        monthly = await self.get_rsi(symbol, DataKind.RSI_MONTHLY)
        price = await self.get_price(symbol)

        instrument = self.catalog.get_instrument(symbol) if self.catalog is not None else None

        return InstrumentSnapshot(
            symbol=symbol,
            price=price,
            weekly=weekly,
            monthly=monthly,
            instrument=instrument,
        )

    async def get_snapshots(self, symbols: List[str]) -> List[InstrumentSnapshot]:
        """Snapshots for several instruments, fetched sequentially in order."""
        snapshots = []
        for symbol in symbols:
            snapshots.append(await self.get_snapshot(symbol))

        incomplete = [s.symbol for s in snapshots if not s.complete]
        logger.info(
            f"Snapshots ready: {len(snapshots) - len(incomplete)}/{len(snapshots)} complete"
            + (f" (missing data: {incomplete})" if incomplete else "")
        )
        return snapshots

    async def get_snapshot_by_name(self, name: str) -> Optional[InstrumentSnapshot]:
        """Snapshot of the catalog instrument with this display name, if any."""
        if self.catalog is None:
            return None

        instrument = self.catalog.find_by_name(name)
        if instrument is None:
            logger.info(f"No instrument named {name!r} in catalog")
            return None

        return await self.get_snapshot(instrument.symbol)
