"""Repository modules for RSI Digest."""
from rsi_digest.repositories.cache_store import (
    CacheEntry, CacheStoreBase, MemoryCacheStore, SQLiteCacheStore
)
from rsi_digest.repositories.instrument_catalog import InstrumentCatalog, Instrument, get_catalog

__all__ = [
    'CacheEntry',
    'CacheStoreBase',
    'MemoryCacheStore',
    'SQLiteCacheStore',
    'InstrumentCatalog',
    'Instrument',
    'get_catalog',
]
