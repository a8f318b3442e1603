"""rsi_digest.services.market_data.rsi_calculator

Local RSI computation (Wilder's smoothing).

The seed averages gains and losses over the first ``period`` deltas, then
each following delta is folded in with a smoothing factor of 1/period. Values
before index ``period`` are undefined and reported as ``None``. The only
special case is ``avg_loss == 0``, which yields 100.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from rsi_digest.config import DEFAULT_RSI_PERIOD


@dataclass(frozen=True)
class RSIRecord:
    """The two most recent points of an RSI series."""

    current: Optional[float]
    previous: Optional[float]
    timestamp: int  # epoch ms of the refresh that produced it

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RSIRecord":
        return cls(
            current=data.get("current"),
            previous=data.get("previous"),
            timestamp=int(data.get("timestamp") or 0),
        )


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100 - 100 / (1 + avg_gain / avg_loss)


def compute_rsi_series(
    closes: Sequence[float],
    period: int = DEFAULT_RSI_PERIOD
) -> Optional[List[Optional[float]]]:
    """
    Compute the RSI series for a list of closes.

    Args:
        closes: Closing prices, oldest first
        period: RSI period (default 14)

    Returns:
        List of the same length as ``closes`` with ``None`` before index
        ``period``, or None if there are not more than ``period`` closes.
    """
    if not closes or len(closes) <= period:
        return None

    series: List[Optional[float]] = [None] * len(closes)

    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        delta = closes[i] - closes[i - 1]
        if delta > 0:
            gains += delta
        else:
            losses -= delta

    avg_gain = gains / period
    avg_loss = losses / period
    series[period] = _rsi(avg_gain, avg_loss)

    for i in range(period + 1, len(closes)):
        delta = closes[i] - closes[i - 1]
        avg_gain = (avg_gain * (period - 1) + max(delta, 0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-delta, 0)) / period
        series[i] = _rsi(avg_gain, avg_loss)

    return series


def latest_rsi_record(
    closes: Sequence[float],
    timestamp: int,
    period: int = DEFAULT_RSI_PERIOD
) -> Optional[RSIRecord]:
    """Build an RSIRecord from the last two points of the RSI series."""
    series = compute_rsi_series(closes, period)
    if series is None:
        return None

    return RSIRecord(
        current=series[-1],
        previous=series[-2] if len(series) > 1 else None,
        timestamp=timestamp,
    )
