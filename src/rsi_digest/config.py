"""Configuration settings for RSI Digest.

Data source
-----------
Prices and closing series come from the Yahoo Finance chart endpoint
(``/v8/finance/chart``). RSI is computed locally (Wilder, 14 periods) from
weekly and monthly closes.

Runtime paths
-------------
By default the cache DB and the log file live under `runtime/` inside the
repo. For systemd deployments, override via environment variables:
- INSTRUMENTS_FILE
- DB_PATH
- LOG_PATH
"""

import os
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = PROJECT_ROOT / "data"
RUNTIME_DIR = PROJECT_ROOT / "runtime"

# Create runtime dir automatically (DB/log need this). Data dir should already exist.
RUNTIME_DIR.mkdir(parents=True, exist_ok=True)

INSTRUMENTS_FILE = Path(os.getenv("INSTRUMENTS_FILE", str(DATA_DIR / "instruments.csv")))
DB_PATH = Path(os.getenv("DB_PATH", str(RUNTIME_DIR / "rsi_digest.db")))
LOG_PATH = Path(os.getenv("LOG_PATH", str(RUNTIME_DIR / "rsi_digest.log")))

DB_PATH.parent.mkdir(parents=True, exist_ok=True)
LOG_PATH.parent.mkdir(parents=True, exist_ok=True)


def _env_list(name: str, default: str) -> List[str]:
    """Read a comma-separated list of symbols from the environment."""
    raw = os.getenv(name, default)
    return [item.strip().upper() for item in raw.split(",") if item.strip()]


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# =============================================================================
# Timezone
# =============================================================================
# Anchors (Tuesday 09:01, 2nd business day 09:01) and the digest cron are
# expressed in this timezone.
DEFAULT_TIMEZONE = os.getenv("TIMEZONE", "Europe/Paris")

# =============================================================================
# Cache expiry
# =============================================================================
PRICE_TTL_HOURS = 24

# Weekly RSI expires at the next Tuesday 09:01 (Monday=0).
WEEKLY_ANCHOR_WEEKDAY = 1
ANCHOR_HOUR = 9
ANCHOR_MINUTE = 1

# Monthly RSI expires at 09:01 on the 2nd business day (Mon-Fri) of the month.
MONTHLY_ANCHOR_BUSINESS_DAY = 2

# =============================================================================
# Yahoo Finance chart endpoint
# =============================================================================
YAHOO_CHART_URL_TEMPLATE = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
YAHOO_HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "application/json",
    "Referer": "https://finance.yahoo.com/",
}

PRICE_RANGE = "5d"
PRICE_INTERVAL = "1d"
RSI_RANGE = "5y"
RSI_WEEKLY_INTERVAL = "1wk"
RSI_MONTHLY_INTERVAL = "1mo"

# Pause before every upstream call. Yahoo has no published rate limit.
UPSTREAM_DELAY_SECONDS = 1.5

# =============================================================================
# RSI
# =============================================================================
DEFAULT_RSI_PERIOD = 14
MIN_RSI_CLOSES = DEFAULT_RSI_PERIOD + 1

# =============================================================================
# Scheduling defaults
# =============================================================================
DIGEST_SCHEDULE_TIME = os.getenv("DIGEST_SCHEDULE_TIME", "09:05")
DIGEST_DAYS_OF_WEEK = os.getenv("DIGEST_DAYS_OF_WEEK", "tue")
DIGEST_MISFIRE_GRACE_SECONDS = 600

# Sent on every scheduled run
DIGEST_SYMBOLS = _env_list("DIGEST_SYMBOLS", "ESE.PA,VERX.AS,PAASI.PA,PPFB.DE,BTC-USD")

# Sent only on the second Tuesday of the month
MONTHLY_DIGEST_SYMBOLS = _env_list("MONTHLY_DIGEST_SYMBOLS", "WPEA.PA")

# Run one digest immediately when the process starts
RUN_ON_START = _env_flag("RUN_ON_START")
