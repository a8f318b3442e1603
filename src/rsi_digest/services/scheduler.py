"""
Scheduler module for RSI Digest.

Runs the digest on a cron trigger (default: Tuesdays 09:05 Europe/Paris):
- "weekly" digest: DIGEST_SYMBOLS, on every run
- "monthly" digest: MONTHLY_DIGEST_SYMBOLS, only when the run falls on the
  second Tuesday of the month

The snapshots are handed to a sink coroutine. Delivery and formatting live
outside this package; the default sink writes one log line per instrument.
"""
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from rsi_digest.config import (
    DEFAULT_TIMEZONE, DIGEST_SCHEDULE_TIME, DIGEST_DAYS_OF_WEEK,
    DIGEST_MISFIRE_GRACE_SECONDS, DIGEST_SYMBOLS, MONTHLY_DIGEST_SYMBOLS
)
from rsi_digest.services.digest import DigestService
from rsi_digest.services.market_data.calendar import is_second_tuesday
from rsi_digest.services.market_data.fetchers import InstrumentSnapshot
from rsi_digest.services.market_data.rsi_calculator import RSIRecord

logger = logging.getLogger(__name__)

DigestSink = Callable[[str, List[InstrumentSnapshot]], Awaitable[None]]

UNAVAILABLE = "unavailable"


def _fmt_rsi(record: Optional[RSIRecord]) -> str:
    if record is None or record.current is None:
        return UNAVAILABLE
    if record.previous is None:
        return f"{record.current:.0f}"
    return f"{record.current:.0f} (prev {record.previous:.0f})"


def summarize_snapshot(snapshot: InstrumentSnapshot) -> str:
    """One-line plain-text summary; missing fields read 'unavailable'."""
    label = snapshot.instrument.name if snapshot.instrument else snapshot.symbol
    currency = f" {snapshot.instrument.currency}" if snapshot.instrument and snapshot.instrument.currency else ""
    price = f"{snapshot.price:.1f}{currency}" if snapshot.price is not None else UNAVAILABLE

    return (
        f"{label} [{snapshot.symbol}] price={price} "
        f"rsi_w={_fmt_rsi(snapshot.weekly)} rsi_m={_fmt_rsi(snapshot.monthly)}"
    )


async def log_sink(digest_name: str, snapshots: List[InstrumentSnapshot]) -> None:
    """Default sink: log the digest."""
    logger.info(f"Digest '{digest_name}' ({len(snapshots)} instruments)")
    for snapshot in snapshots:
        logger.info(f"  - {summarize_snapshot(snapshot)}")


class DigestScheduler:
    """
    Runs the digest job on a cron schedule.

    Runs never overlap: the cron job has max_instances=1 and manual runs
    share a lock with it. Missed runs are coalesced.
    """

    def __init__(
        self,
        service: DigestService,
        sink: DigestSink = log_sink,
        timezone: Optional[str] = None,
        symbols: Optional[List[str]] = None,
        monthly_symbols: Optional[List[str]] = None
    ):
        self.service = service
        self.sink = sink
        self.timezone = pytz.timezone(timezone or DEFAULT_TIMEZONE)
        self.symbols = list(DIGEST_SYMBOLS if symbols is None else symbols)
        self.monthly_symbols = list(MONTHLY_DIGEST_SYMBOLS if monthly_symbols is None else monthly_symbols)
        self._run_lock = asyncio.Lock()

        jobstores = {'default': MemoryJobStore()}
        executors = {'default': AsyncIOExecutor()}
        job_defaults = {
            'coalesce': True,
            'max_instances': 1,
            'misfire_grace_time': DIGEST_MISFIRE_GRACE_SECONDS
        }

        self.scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone=self.timezone
        )

    async def start(self):
        """Start the scheduler and set up the digest job."""
        logger.info("=" * 60)
        logger.info("Starting digest scheduler...")
        logger.info(f"Timezone: {self.timezone.zone}")
        logger.info("=" * 60)

        self._add_digest_job()
        self.scheduler.start()

        for job in self.scheduler.get_jobs():
            logger.info(f"  - {job.id}: next run at {job.next_run_time}")

    def _add_digest_job(self):
        try:
            hour, minute = map(int, DIGEST_SCHEDULE_TIME.split(":"))
        except ValueError:
            logger.warning(f"Invalid DIGEST_SCHEDULE_TIME {DIGEST_SCHEDULE_TIME!r}, using 09:05")
            hour, minute = 9, 5

        trigger = CronTrigger(
            hour=hour,
            minute=minute,
            day_of_week=DIGEST_DAYS_OF_WEEK,
            timezone=self.timezone
        )

        self.scheduler.add_job(
            self.run_digest,
            trigger=trigger,
            id="rsi_digest",
            name="RSI Digest",
            replace_existing=True
        )

        logger.info(
            f"Scheduled digest at {hour:02d}:{minute:02d} {self.timezone.zone} ({DIGEST_DAYS_OF_WEEK})"
        )

    async def run_digest(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Build and deliver the digests due at ``now``.

        Returns:
            Dict mapping digest name -> number of instruments delivered.
            Empty when another run is still in progress.
        """
        if self._run_lock.locked():
            logger.warning("Digest already running, skipping this run")
            return {}

        async with self._run_lock:
            return await self._run_digest(now)

    async def _run_digest(self, now: Optional[datetime]) -> Dict[str, int]:
        start_time = now or datetime.now(self.timezone)
        local_start = start_time.astimezone(self.timezone)
        delivered: Dict[str, int] = {}

        logger.info(f"DIGEST START: {local_start.strftime('%Y-%m-%d %H:%M:%S %Z')}")

        due = [("weekly", self.symbols)]
        if is_second_tuesday(local_start.date()):
            due.append(("monthly", self.monthly_symbols))

        for digest_name, symbols in due:
            if not symbols:
                logger.info(f"No symbols configured for '{digest_name}' digest, skipping")
                continue

            try:
                snapshots = await self.service.build_digest(symbols)
                await self.sink(digest_name, snapshots)
                delivered[digest_name] = len(snapshots)
            except Exception as e:
                logger.error(f"Error in '{digest_name}' digest: {e}", exc_info=True)

        duration = (datetime.now(self.timezone) - local_start).total_seconds()
        logger.info(f"DIGEST COMPLETE in {duration:.1f}s: {delivered}")
        return delivered

    async def run_now(self) -> Dict[str, int]:
        """Run the digest immediately, outside the schedule."""
        logger.info("Running digest now (manual trigger)")
        return await self.run_digest()

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Digest scheduler shutting down")
