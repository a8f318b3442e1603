"""
Yahoo Finance chart provider.

Reads closing prices from the public ``/v8/finance/chart`` endpoint. Adjusted
closes are preferred (``indicators.adjclose``); when the endpoint omits them,
as it does for some crypto pairs, the raw ``indicators.quote.close`` series is
used instead.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from rsi_digest.config import YAHOO_CHART_URL_TEMPLATE, YAHOO_HEADERS
from rsi_digest.exceptions import MalformedResponse, UpstreamUnavailable
from rsi_digest.services.market_data.providers.base import ChartProviderBase

logger = logging.getLogger(__name__)


def _numeric_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def extract_closes(symbol: str, payload: Dict[str, Any]) -> List[Optional[float]]:
    """
    Pull the closing-price series out of a chart payload.

    Raises:
        MalformedResponse: If the payload has no result or no close series
    """
    try:
        chart = payload.get("chart") or {}
        results = chart.get("result") or []
        if not results:
            error = chart.get("error") or {}
            description = error.get("description") if isinstance(error, dict) else None
            raise MalformedResponse(symbol, description or "chart has no result")

        indicators = results[0].get("indicators") or {}

        adjclose = indicators.get("adjclose") or []
        closes = adjclose[0].get("adjclose") if adjclose else None

        if closes is None:
            quote = indicators.get("quote") or []
            closes = quote[0].get("close") if quote else None
    except (AttributeError, IndexError, TypeError) as e:
        raise MalformedResponse(symbol, f"unexpected chart layout ({e})") from e

    if not isinstance(closes, list):
        raise MalformedResponse(symbol, "no close series in chart")

    return [_numeric_or_none(v) for v in closes]


class YahooChartProvider(ChartProviderBase):
    """Closing prices from the Yahoo Finance chart endpoint (aiohttp)."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._owns_session = session is None

    @property
    def name(self) -> str:
        return "Yahoo Finance Chart"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def get_closes(
        self,
        symbol: str,
        range_: str,
        interval: str
    ) -> List[Optional[float]]:
        url = YAHOO_CHART_URL_TEMPLATE.format(symbol=symbol)
        params = {"range": range_, "interval": interval}

        logger.debug(f"GET {url} range={range_} interval={interval}")

        try:
            async with self._get_session().get(url, params=params, headers=YAHOO_HEADERS) as resp:
                if resp.status != 200:
                    raise UpstreamUnavailable(symbol, f"HTTP {resp.status}")
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamUnavailable(symbol, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(symbol, f"response is not JSON ({e})") from e

        if not isinstance(payload, dict):
            raise MalformedResponse(symbol, "chart payload is not an object")

        return extract_closes(symbol, payload)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
