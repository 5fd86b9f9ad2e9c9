"""Scheduler service - sweeps every active monitor on a fixed interval.

One sweep checks all active monitors in parallel, bounded by a semaphore.
Each monitor runs in its own session so a failure in one (a crashing check,
a locked database) is recorded against that monitor and never aborts the
rest of the sweep.

A daily job shortly after midnight UTC rolls yesterday's raw checks into
per-day status rows and applies the retention windows.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..crud import incidents as incident_crud
from ..crud import monitors as monitor_crud
from ..crud import status as status_crud
from ..database import async_session
from ..models import Monitor
from ..schemas.status import MonitorSweepResult, SweepSummary
from ..utils.db_utils import retry_on_lock
from .checker import CheckerService, checker_service
from .notifier import NotifierService, notifier_service
from .status import aggregate_daily_status

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for running monitor sweeps and daily maintenance."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        checker: Optional[CheckerService] = None,
        notifier: Optional[NotifierService] = None,
        max_concurrent_checks: Optional[int] = None,
    ):
        self.session_factory = session_factory or async_session
        self.checker = checker or checker_service
        self.notifier = notifier or notifier_service
        self.max_concurrent_checks = max_concurrent_checks or settings.max_concurrent_checks
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def start(self):
        """Start the scheduler."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler(timezone="UTC")

        self.scheduler.add_job(
            self._scheduled_sweep,
            trigger=IntervalTrigger(seconds=settings.sweep_interval_seconds),
            id="run_sweep",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=settings.sweep_interval_seconds,
        )

        self.scheduler.add_job(
            self.run_daily_maintenance,
            trigger=CronTrigger(hour=0, minute=5, timezone="UTC"),
            id="daily_maintenance",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._running = True
        logger.info(
            f"Scheduler started (interval={settings.sweep_interval_seconds}s, "
            f"max_concurrent={self.max_concurrent_checks})"
        )

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _scheduled_sweep(self):
        try:
            summary = await self.run_sweep()
            logger.debug(f"Sweep finished: {summary.successful}/{summary.checked} ok")
        except Exception as e:
            logger.error(f"Error running sweep: {e}")

    async def run_sweep(self) -> SweepSummary:
        """Check every active monitor once.

        Returns:
            Per-monitor outcomes plus counts; a monitor whose processing
            raised is counted as failed and carries the error text
        """
        async with self.session_factory() as session:
            monitors = await monitor_crud.get_active_monitors(session)
            # Plain attributes only; each check reloads the monitor in its own session
            targets = [(monitor.id, monitor.name) for monitor in monitors]

        if not targets:
            return SweepSummary(message="No active monitors", checked=0, successful=0, failed=0, results=[])

        semaphore = asyncio.Semaphore(self.max_concurrent_checks)

        async def check_with_limit(monitor_id: str) -> MonitorSweepResult:
            async with semaphore:
                return await self._check_single_monitor(monitor_id)

        outcomes = await asyncio.gather(
            *(check_with_limit(monitor_id) for monitor_id, _name in targets),
            return_exceptions=True,
        )

        results = []
        for (monitor_id, name), outcome in zip(targets, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Error checking monitor {name}: {outcome}")
                results.append(MonitorSweepResult(monitor_id=monitor_id, name=name, error=str(outcome) or "Unknown error"))
            else:
                results.append(outcome)

        failed = sum(1 for r in results if r.error)
        return SweepSummary(
            message="Checks completed",
            checked=len(targets),
            successful=len(targets) - failed,
            failed=failed,
            results=results,
        )

    async def _check_single_monitor(self, monitor_id: str) -> MonitorSweepResult:
        """Check one monitor in its own session and notify on a status change."""
        async with self.session_factory() as session:
            monitor = await monitor_crud.get_monitor(session, monitor_id)
            if monitor is None:
                raise LookupError(f"Monitor {monitor_id} disappeared during the sweep")

            last_check = await monitor_crud.get_last_check(session, monitor.id)
            previous_status = last_check.status if last_check else None

            result = await self.checker.check(monitor)
            await monitor_crud.insert_check(session, monitor.id, result)
            await retry_on_lock(session.commit)

            if previous_status != result.status:
                await self._notify(session, monitor, previous_status, result)

            logger.debug(f"Monitor {monitor.name}: {result.status}")
            return MonitorSweepResult(
                monitor_id=monitor.id,
                name=monitor.name,
                status=result.status,
                response_time_ms=result.response_time_ms,
                status_code=result.status_code,
                error_message=result.error_message,
            )

    async def _notify(self, session: AsyncSession, monitor: Monitor, previous_status: Optional[str], result):
        """Send notifications; a failure here never fails the check."""
        try:
            incident = await incident_crud.get_open_incident_for_group(session, monitor.group_id)
            summary = await self.notifier.send_notifications(
                session, monitor, previous_status, result.status, incident, result
            )
            await retry_on_lock(session.commit)
            for error in summary.errors:
                logger.warning(f"Notification failed for {monitor.name}: {error}")
        except Exception as e:
            logger.error(f"Failed to send notifications for {monitor.name}: {e}")
            await session.rollback()

    async def run_daily_maintenance(self, day=None):
        """Roll up yesterday's checks and drop data past retention."""
        day = day or (datetime.utcnow().date() - timedelta(days=1))
        try:
            async with self.session_factory() as session:
                rolled_up = await aggregate_daily_status(session, day)
                removed_checks = await monitor_crud.cleanup_old_checks(session, settings.check_retention_days)
                removed_days = await status_crud.cleanup_old_daily_status(
                    session, settings.daily_status_retention_days
                )
                await retry_on_lock(session.commit)
            logger.info(
                f"Daily maintenance for {day}: {rolled_up} rollups, "
                f"{removed_checks} old checks and {removed_days} old days removed"
            )
        except Exception as e:
            logger.error(f"Error running daily maintenance: {e}")


# Global instance
scheduler_service = SchedulerService()
