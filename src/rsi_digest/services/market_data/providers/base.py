"""
Chart Provider Base Interface.

Defines the interface of an upstream source of closing-price series, so the
fetchers do not depend on a particular data vendor.
"""
from abc import ABC, abstractmethod
from typing import List, Optional


class ChartProviderBase(ABC):
    """
    Abstract base class for closing-price providers.

    Implementations raise UpstreamUnavailable when the source cannot be
    reached or answers with an error, and MalformedResponse when the answer
    does not contain a closing-price series.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this provider (for logging)."""
        pass

    @abstractmethod
    async def get_closes(
        self,
        symbol: str,
        range_: str,
        interval: str
    ) -> List[Optional[float]]:
        """
        Fetch the closing-price series of a symbol.

        Args:
            symbol: Yahoo Finance symbol (e.g., "ESE.PA", "BTC-USD")
            range_: Lookback window (e.g., "5d", "5y")
            interval: Bar size (e.g., "1d", "1wk", "1mo")

        Returns:
            Closes, oldest first; missing bars are None
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the provider."""
