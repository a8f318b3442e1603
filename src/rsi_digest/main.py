#!/usr/bin/env python3
"""RSI Digest - Main Entry Point

Starts the digest scheduler and keeps running until interrupted.

Usage:
    export PYTHONPATH=src
    python -m rsi_digest.main

Set RUN_ON_START=true to build one digest immediately at startup.
"""
import asyncio
import logging
import sys

from rsi_digest.config import LOG_PATH, RUN_ON_START
from rsi_digest.services.digest import DigestService
from rsi_digest.services.scheduler import DigestScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(LOG_PATH, encoding="utf-8")
    ]
)
logger = logging.getLogger(__name__)


async def run() -> None:
    service = DigestService()
    await service.initialize()

    scheduler = DigestScheduler(service)
    await scheduler.start()

    try:
        if RUN_ON_START:
            await scheduler.run_now()

        # Park the main task; the scheduler runs on this loop
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
        await service.close()


def main():
    """Run the digest scheduler."""
    logger.info("Starting RSI Digest...")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
