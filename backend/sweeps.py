"""Periodic sweep scheduler for the chat queue.

Runs the assignment and liveness sweeps on fixed intervals using APScheduler.
A failing sweep is logged and simply tried again on the next tick; the queue
engine itself never retries.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from live_agent_system import ChatQueueService

logger = logging.getLogger(__name__)

ASSIGN_JOB_ID = "chat-assign-pending"
MONITOR_JOB_ID = "chat-monitor-polling"


class SweepScheduler:
    """Schedules assign_pending and monitor_polling sweeps."""

    def __init__(
        self,
        service: ChatQueueService,
        assign_interval_seconds: float,
        monitor_interval_seconds: float,
    ) -> None:
        """Initialize sweep scheduler.

        Args:
            service: Queue service whose sweeps are run
            assign_interval_seconds: Seconds between assignment sweeps
            monitor_interval_seconds: Seconds between liveness sweeps
        """
        self.service = service
        self.assign_interval_seconds = assign_interval_seconds
        self.monitor_interval_seconds = monitor_interval_seconds
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Register both sweeps and start the scheduler. Idempotent."""
        if self._running:
            logger.warning("Sweep scheduler already running")
            return

        self.scheduler.add_job(
            func=self.run_assign_sweep,
            trigger=IntervalTrigger(seconds=self.assign_interval_seconds),
            id=ASSIGN_JOB_ID,
            name="Assign queued chats",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            func=self.run_monitor_sweep,
            trigger=IntervalTrigger(seconds=self.monitor_interval_seconds),
            id=MONITOR_JOB_ID,
            name="Expire silent chats",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self._running = True
        logger.info(
            f"Sweep scheduler started (assign every {self.assign_interval_seconds}s, "
            f"monitor every {self.monitor_interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the scheduler, letting a running sweep finish."""
        if not self._running:
            logger.warning("Sweep scheduler not running")
            return

        self.scheduler.shutdown(wait=True)
        self._running = False
        logger.info("Sweep scheduler stopped")

    async def run_assign_sweep(self) -> None:
        try:
            await self.service.assign_pending()
        except Exception as e:
            logger.error(f"Assignment sweep failed: {e}")

    async def run_monitor_sweep(self) -> None:
        try:
            await self.service.monitor_polling()
        except Exception as e:
            logger.error(f"Liveness sweep failed: {e}")
