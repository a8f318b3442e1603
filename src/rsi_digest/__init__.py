"""RSI Digest package.

Retrieves last-close prices and weekly/monthly RSI14 for a fixed set of
instruments and hands per-instrument snapshots to a delivery sink, on demand
or on a schedule.

Market data comes from the Yahoo Finance chart endpoint. Every lookup goes
through a persistent cache with calendar-aware expiry, and a failed refresh
falls back to the last stored value.
"""

__version__ = "1.0.0"
