#!/usr/bin/env python3
"""
Background runner for the tournament sync scheduler.

This script runs the full-sync scheduler as a standalone background service.
It can be run via systemd, supervisor, or directly.

Usage:
    python run_scheduler.py              # Run in foreground
    python run_scheduler.py --once       # Run one full sync and exit
"""
import asyncio
import argparse
import json
import signal
import sys

from app.core.config import settings
from app.core.database import init_db
from app.core.logging import configure_logging, get_logger
from app.core.scheduler import SyncScheduler, run_full_sync

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


class SchedulerRunner:
    """Runner for the sync scheduler."""

    def __init__(self):
        self.scheduler: SyncScheduler = None
        self.shutdown = False

    async def start(self):
        """Start the scheduler and run until shutdown."""
        logger.info("Starting scheduler runner...")

        self.scheduler = SyncScheduler()
        await self.scheduler.start()

        logger.info("Scheduler is now running, press Ctrl+C to stop")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        while not self.shutdown:
            await asyncio.sleep(1)

        await self.scheduler.stop()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        """Set shutdown flag."""
        logger.info("Shutdown signal received")
        self.shutdown = True


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Run the tournament sync scheduler'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Run a single full sync and exit'
    )

    args = parser.parse_args()

    init_db()

    if args.once:
        try:
            result = asyncio.run(run_full_sync())
        except Exception as e:
            logger.error(f"Full sync failed: {e}")
            return 1
        print(json.dumps(result, indent=2, default=str))
        return 0

    runner = SchedulerRunner()

    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
        return 0
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
