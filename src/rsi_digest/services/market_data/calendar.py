"""Business calendar anchors used as cache expiry boundaries.

Weekly RSI stays valid until the next Tuesday 09:01 and monthly RSI until
09:01 on the second business day of the month. Business days are Monday to
Friday; public holidays are not taken into account.

All functions take an aware ``now`` and evaluate the anchor in the configured
local timezone. An anchor equal to ``now`` counts as already passed.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz

from rsi_digest.config import (
    DEFAULT_TIMEZONE, WEEKLY_ANCHOR_WEEKDAY, ANCHOR_HOUR, ANCHOR_MINUTE,
    MONTHLY_ANCHOR_BUSINESS_DAY
)

ANCHOR_TIME = time(ANCHOR_HOUR, ANCHOR_MINUTE, 0, 0)
TUESDAY = 1


def _tz(tz: Optional[pytz.BaseTzInfo]) -> pytz.BaseTzInfo:
    return tz or pytz.timezone(DEFAULT_TIMEZONE)


def _at_anchor_time(day: date, tz: pytz.BaseTzInfo) -> datetime:
    """Localize ``day`` at the anchor time of day."""
    return tz.localize(datetime.combine(day, ANCHOR_TIME))


def _to_ms(delta: timedelta) -> int:
    return int(round(delta.total_seconds() * 1000))


def next_weekly_anchor(now: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Return the next weekly anchor strictly after ``now``."""
    tz = _tz(tz)
    local_now = now.astimezone(tz)

    days_ahead = (WEEKLY_ANCHOR_WEEKDAY - local_now.weekday()) % 7
    target = _at_anchor_time(local_now.date() + timedelta(days=days_ahead), tz)

    # Already past this week's anchor -> next week
    if target <= now:
        target = _at_anchor_time(local_now.date() + timedelta(days=days_ahead + 7), tz)

    return target


def business_day_of_month(
    year: int,
    month: int,
    ordinal: int = MONTHLY_ANCHOR_BUSINESS_DAY,
    tz: Optional[pytz.BaseTzInfo] = None
) -> datetime:
    """
    Return the ``ordinal``-th business day of a month at the anchor time.

    Args:
        year: Calendar year
        month: Month number; 13 rolls over to January of ``year + 1``
        ordinal: Which business day to pick (1-based)
        tz: Timezone of the anchor (default: configured timezone)
    """
    tz = _tz(tz)
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1

    day = date(year, month, 1)
    counted = 0
    while True:
        if day.weekday() < 5:
            counted += 1
            if counted == ordinal:
                return _at_anchor_time(day, tz)
        day += timedelta(days=1)


def second_business_day(year: int, month: int, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Return the second business day of a month at the anchor time."""
    return business_day_of_month(year, month, 2, tz)


def next_monthly_anchor(now: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """Return the next monthly anchor strictly after ``now``."""
    tz = _tz(tz)
    local_now = now.astimezone(tz)

    target = business_day_of_month(local_now.year, local_now.month, tz=tz)
    if target <= now:
        target = business_day_of_month(local_now.year, local_now.month + 1, tz=tz)

    return target


def ms_until_weekly_anchor(now: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> int:
    """Milliseconds from ``now`` to the next weekly anchor."""
    return _to_ms(next_weekly_anchor(now, tz) - now)


def ms_until_monthly_anchor(now: datetime, tz: Optional[pytz.BaseTzInfo] = None) -> int:
    """Milliseconds from ``now`` to the next monthly anchor."""
    return _to_ms(next_monthly_anchor(now, tz) - now)


def is_second_tuesday(day: date) -> bool:
    """True if ``day`` is the second Tuesday of its month."""
    first_weekday = date(day.year, day.month, 1).weekday()
    first_tuesday = 1 + (TUESDAY - first_weekday) % 7
    return day.day == first_tuesday + 7
