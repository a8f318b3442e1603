"""rsi_digest.services.market_data.providers

Upstream closing-price providers.

Only the Yahoo Finance chart endpoint is supported:
    from rsi_digest.services.market_data.providers import get_provider

    provider = get_provider()
    closes = await provider.get_closes("ESE.PA", "5y", "1wk")
"""

import logging
from typing import Optional

from rsi_digest.services.market_data.providers.base import ChartProviderBase

logger = logging.getLogger(__name__)

# Cached provider instance (single provider in this build)
_provider_instance: Optional[ChartProviderBase] = None


def get_provider(provider_name: Optional[str] = None) -> ChartProviderBase:
    """Return the (single) Yahoo chart provider instance.

    Args:
        provider_name: Optional provider name override. Only "yahoo" is
            supported.

    Raises:
        ValueError: If provider_name is provided and is not a Yahoo alias.
    """
    global _provider_instance

    if provider_name:
        name = provider_name.lower().strip()
        if name not in {"yahoo", "yahoo_finance", "yf"}:
            raise ValueError(f"Unsupported chart provider: {provider_name!r} (only 'yahoo')")

    if _provider_instance is None:
        from rsi_digest.services.market_data.providers.yahoo_provider import YahooChartProvider

        _provider_instance = YahooChartProvider()
        logger.info("Using chart provider: %s", _provider_instance.name)

    return _provider_instance


def reset_provider() -> None:
    """Reset the cached provider instance (primarily for tests)."""
    global _provider_instance
    _provider_instance = None


__all__ = [
    "ChartProviderBase",
    "get_provider",
    "reset_provider",
]
