"""Market data error types.

Both concrete errors are raised by upstream calls and caught by the
FreshnessGuard, which turns them into a stale-cache fallback. Callers of the
fetchers never see them: missing data is reported as ``None``.
"""


class MarketDataError(Exception):
    """Base class for upstream market data failures."""

    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        super().__init__(f"{symbol}: {message}")


class UpstreamUnavailable(MarketDataError):
    """Network failure, timeout, HTTP error status or unreadable body."""


class MalformedResponse(MarketDataError):
    """The response parsed but its shape or volume of data is not usable."""
