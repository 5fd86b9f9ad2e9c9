"""Status aggregation - effective status, uptime percentages, daily buckets.

The pure functions here hold the rules; the async wrappers feed them from
the database.
"""
import logging
import math
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..crud import monitors as monitor_crud
from ..crud import status as status_crud
from ..crud.status import StatusCounts
from ..models import Monitor
from ..schemas.status import DailyStatusPoint, StatusMonitor, StatusPage

logger = logging.getLogger(__name__)

# Window the effective status looks at before calling a monitor down
EFFECTIVE_STATUS_WINDOW_SECONDS = 300

DAILY_STATUS_DAYS = 90

OVERALL_STATUS_TEXT = {
    "operational": "All Systems Operational",
    "degraded": "Degraded Performance",
    "partial_outage": "Partial System Outage",
    "major_outage": "Major System Outage",
}


def checks_for_window(interval_seconds: int) -> int:
    """Number of checks needed to cover the effective-status window."""
    return max(1, math.ceil(EFFECTIVE_STATUS_WINDOW_SECONDS / max(1, interval_seconds)))


def effective_status(recent_statuses: Sequence[str], interval_seconds: int) -> Optional[str]:
    """Anti-flap status from recent check statuses, newest first.
    
    - no checks: None
    - fewer checks than the window needs: the newest status as-is
    - every check in a full window down: down
    - newest down but the window is not all down: degraded
    - otherwise the newest status
    """
    needed = checks_for_window(interval_seconds)
    window = list(recent_statuses[:needed])
    if not window:
        return None
    
    newest = window[0]
    if len(window) < needed:
        return newest
    if all(status == "down" for status in window):
        return "down"
    if newest == "down":
        return "degraded"
    return newest


def uptime_percent(up: int, total: int) -> float:
    """Percentage of up checks with two decimals. No data counts as 100."""
    if total <= 0:
        return 100.0
    # Round half up
    return math.floor(up / total * 10000 + 0.5) / 100


def bucket_status(counts: StatusCounts) -> str:
    if counts.total <= 0:
        return "none"
    if counts.down > 0:
        return "down"
    if counts.degraded > 0:
        return "degraded"
    return "up"


def estimate_downtime_minutes(counts: StatusCounts) -> int:
    """Share of a day spent down, assuming evenly spaced checks."""
    if counts.total <= 0:
        return 0
    return int(math.floor(counts.down / counts.total * 24 * 60 + 0.5))


def build_daily_status(
    rollups: Iterable,
    raw_counts: Mapping[str, StatusCounts],
    today: date,
    days: int = DAILY_STATUS_DAYS,
) -> List[DailyStatusPoint]:
    """Daily buckets for the trailing ``days`` days, oldest first.
    
    ``rollups`` are DailyStatus rows (or anything with the same attributes).
    Raw check counts override the rollup for the same day, since the
    current day is never rolled up yet.
    """
    buckets: Dict[str, DailyStatusPoint] = {}
    for offset in range(days - 1, -1, -1):
        day = (today - timedelta(days=offset)).isoformat()
        buckets[day] = DailyStatusPoint(date=day, status="none", downtime_minutes=0)
    
    for rollup in rollups:
        if rollup.date not in buckets or not rollup.total_checks:
            continue
        counts = StatusCounts(
            total=rollup.total_checks,
            up=rollup.up_checks,
            down=rollup.down_checks,
            degraded=rollup.degraded_checks,
        )
        buckets[rollup.date] = DailyStatusPoint(
            date=rollup.date,
            status=bucket_status(counts),
            downtime_minutes=rollup.downtime_minutes or 0,
        )
    
    for day, counts in raw_counts.items():
        if day not in buckets or counts.total <= 0:
            continue
        buckets[day] = DailyStatusPoint(
            date=day,
            status=bucket_status(counts),
            downtime_minutes=estimate_downtime_minutes(counts),
        )
    
    return list(buckets.values())


def overall_status(statuses: Iterable[Optional[str]]) -> str:
    """Banner status for the status page."""
    statuses = list(statuses)
    if not statuses:
        return "operational"
    down = sum(1 for s in statuses if s == "down")
    degraded = sum(1 for s in statuses if s == "degraded")
    if down == len(statuses):
        return "major_outage"
    if down > 0:
        return "partial_outage"
    if degraded > 0:
        return "degraded"
    return "operational"


async def get_effective_status(
    session: AsyncSession,
    monitor_id: str,
    interval_seconds: int,
) -> Optional[str]:
    checks = await monitor_crud.get_recent_checks(
        session, monitor_id, limit=checks_for_window(interval_seconds)
    )
    return effective_status([c.status for c in checks], interval_seconds)


async def get_uptime(session: AsyncSession, monitor_id: str, hours: int) -> float:
    since = datetime.utcnow() - timedelta(hours=hours)
    counts = await status_crud.count_statuses_since(session, monitor_id, since)
    return uptime_percent(counts.up, counts.total)


async def get_uptime_24h(session: AsyncSession, monitor_id: str) -> float:
    return await get_uptime(session, monitor_id, 24)


async def get_uptime_90d(session: AsyncSession, monitor_id: str) -> float:
    return await get_uptime(session, monitor_id, DAILY_STATUS_DAYS * 24)


async def get_daily_status(
    session: AsyncSession,
    monitor_id: str,
    today: Optional[date] = None,
) -> List[DailyStatusPoint]:
    today = today or datetime.utcnow().date()
    since = today - timedelta(days=DAILY_STATUS_DAYS - 1)
    rollups = await status_crud.daily_rollups_since(session, monitor_id, since)
    raw_counts = await status_crud.raw_daily_counts_since(session, monitor_id, since)
    return build_daily_status(rollups, raw_counts, today)


async def get_status_monitor(session: AsyncSession, monitor: Monitor) -> StatusMonitor:
    # One session cannot run queries concurrently, so these are sequential
    current = await get_effective_status(session, monitor.id, monitor.interval_seconds or 60)
    uptime_24h = await get_uptime_24h(session, monitor.id)
    uptime_90d = await get_uptime_90d(session, monitor.id)
    daily = await get_daily_status(session, monitor.id)
    return StatusMonitor(
        id=monitor.id,
        name=monitor.name,
        group_id=monitor.group_id,
        current_status=current,
        uptime_24h=uptime_24h,
        uptime_90d=uptime_90d,
        daily_status=daily,
    )


async def get_status_page(session: AsyncSession) -> StatusPage:
    """Status page data for every monitor."""
    monitors = await monitor_crud.get_all_monitors(session)
    entries = [await get_status_monitor(session, monitor) for monitor in monitors]
    overall = overall_status(entry.current_status for entry in entries)
    return StatusPage(
        overall_status=overall,
        overall_status_text=OVERALL_STATUS_TEXT[overall],
        monitors=entries,
    )


async def aggregate_daily_status(session: AsyncSession, day: Optional[date] = None) -> int:
    """Roll up one day's raw checks (yesterday by default). Returns monitors rolled up."""
    day = day or (datetime.utcnow() - timedelta(days=1)).date()
    per_monitor = await status_crud.counts_by_monitor_for_day(session, day)
    for monitor_id, counts in per_monitor.items():
        await status_crud.upsert_daily_status(
            session,
            monitor_id,
            day.isoformat(),
            counts,
            estimate_downtime_minutes(counts),
        )
    logger.info(f"Aggregated daily status for {len(per_monitor)} monitors on {day.isoformat()}")
    return len(per_monitor)
