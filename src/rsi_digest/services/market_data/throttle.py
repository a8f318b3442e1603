"""Fixed pause inserted before every upstream call."""
import asyncio
import logging

from rsi_digest.config import UPSTREAM_DELAY_SECONDS

logger = logging.getLogger(__name__)


class Throttle:
    """
    Cooperative delay before an upstream request.

    There is no queue and no token bucket: callers fetch instruments one after
    another, so a cold cache for N instruments costs about N x delay per data
    kind. Cache hits must not call ``wait``.
    """

    def __init__(self, delay_seconds: float = UPSTREAM_DELAY_SECONDS):
        self.delay_seconds = delay_seconds

    async def wait(self) -> None:
        """Suspend the calling task for the configured delay."""
        if self.delay_seconds <= 0:
            return
        logger.debug(f"Throttling upstream call for {self.delay_seconds:.1f}s")
        await asyncio.sleep(self.delay_seconds)
