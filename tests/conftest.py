"""Pytest configuration and shared fixtures."""
import csv
import os
import tempfile
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union
from unittest.mock import AsyncMock, MagicMock

import aiosqlite
import pytest
import pytz

from rsi_digest.repositories.cache_store import MemoryCacheStore
from rsi_digest.repositories.instrument_catalog import InstrumentCatalog
from rsi_digest.services.market_data.providers.base import ChartProviderBase

PARIS = pytz.timezone("Europe/Paris")

# Sunday 2026-10-18 12:00 Europe/Paris (10:00 UTC)
FIXED_NOW = PARIS.localize(datetime(2026, 10, 18, 12, 0, 0))

HOUR_MS = 60 * 60 * 1000


class FakeChartProvider(ChartProviderBase):
    """
    In-memory chart provider.

    Responses are keyed by (symbol, interval); a value can be a list of closes
    or an exception instance to raise.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, str], Union[List, Exception]]] = None):
        self.responses = responses or {}
        self.calls: List[Tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return "Fake"

    async def get_closes(self, symbol, range_, interval):
        self.calls.append((symbol, range_, interval))
        response = self.responses.get((symbol, interval))
        if isinstance(response, Exception):
            raise response
        if response is None:
            raise RuntimeError(f"no fake response for {symbol} {interval}")
        return list(response)


class LockedStore(MemoryCacheStore):
    """Memory store whose reads fail like a locked SQLite database."""

    async def get(self, key):
        raise aiosqlite.OperationalError("database is locked")


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def now_ms():
    return int(FIXED_NOW.timestamp() * 1000)


@pytest.fixture
def store():
    return MemoryCacheStore()


@pytest.fixture
def throttle():
    """Throttle double that records waits without sleeping."""
    mock = MagicMock()
    mock.wait = AsyncMock()
    return mock


@pytest.fixture
def provider():
    return FakeChartProvider()


@pytest.fixture
def temp_csv():
    """Create a temporary instruments CSV file."""
    fd, path = tempfile.mkstemp(suffix='.csv')
    os.close(fd)

    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['symbol', 'name', 'currency'])
        writer.writerow(['ESE.PA', 'S&P 500', 'EUR'])
        writer.writerow(['BTC-USD', 'Bitcoin', 'USD'])
        writer.writerow(['ACME', 'Acme Corp', 'USD'])

    yield path

    if os.path.exists(path):
        os.unlink(path)


@pytest.fixture
def catalog(temp_csv):
    catalog = InstrumentCatalog(temp_csv)
    catalog.load()
    return catalog


@pytest.fixture
def temp_db():
    """Create a temporary database file for testing."""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    yield path

    for suffix in ('', '-wal', '-shm'):
        if os.path.exists(path + suffix):
            os.unlink(path + suffix)
