"""
Digest service: wires the cache store, the chart provider, the instrument
catalog and the fetcher together.

``initialize`` is idempotent and is called once by the entry point before the
scheduler starts.
"""
import asyncio
import logging
from typing import List, Optional

from rsi_digest.repositories.cache_store import CacheStoreBase, SQLiteCacheStore
from rsi_digest.repositories.instrument_catalog import InstrumentCatalog, get_catalog
from rsi_digest.services.market_data.fetchers import InstrumentSnapshot, MarketDataFetcher
from rsi_digest.services.market_data.providers import ChartProviderBase, get_provider
from rsi_digest.services.market_data.throttle import Throttle

logger = logging.getLogger(__name__)


class DigestService:
    """Entry point of the core for scheduled and on-demand retrievals."""

    def __init__(
        self,
        store: Optional[CacheStoreBase] = None,
        provider: Optional[ChartProviderBase] = None,
        catalog: Optional[InstrumentCatalog] = None,
        throttle: Optional[Throttle] = None
    ):
        self.store = store if store is not None else SQLiteCacheStore()
        self.provider = provider if provider is not None else get_provider()
        self.catalog = catalog if catalog is not None else get_catalog()
        self.fetcher = MarketDataFetcher(
            store=self.store,
            provider=self.provider,
            throttle=throttle,
            catalog=self.catalog,
        )
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create storage and load the catalog (once)."""
        async with self._init_lock:
            if self._initialized:
                return

            logger.info("Initializing cache store...")
            await self.store.initialize()

            logger.info("Loading instrument catalog...")
            self.catalog.load()

            logger.info(f"Chart provider: {self.provider.name}")
            self._initialized = True

    async def build_digest(self, symbols: List[str]) -> List[InstrumentSnapshot]:
        """Snapshots for the given symbols, in order."""
        await self.initialize()
        return await self.fetcher.get_snapshots(symbols)

    async def close(self) -> None:
        await self.provider.close()
