"""Check aggregation queries for uptime and daily rollups."""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List

from sqlalchemy import select, delete, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Check, DailyStatus


@dataclass
class StatusCounts:
    """Check counts by status over some period."""
    total: int = 0
    up: int = 0
    down: int = 0
    degraded: int = 0


def _count_columns():
    return (
        func.count(Check.id),
        func.sum(case((Check.status == "up", 1), else_=0)),
        func.sum(case((Check.status == "down", 1), else_=0)),
        func.sum(case((Check.status == "degraded", 1), else_=0)),
    )


def _counts(row) -> StatusCounts:
    total, up, down, degraded = row
    return StatusCounts(total=total or 0, up=up or 0, down=down or 0, degraded=degraded or 0)


async def count_statuses_since(session: AsyncSession, monitor_id: str, since: datetime) -> StatusCounts:
    result = await session.execute(
        select(*_count_columns()).where(Check.monitor_id == monitor_id, Check.checked_at > since)
    )
    return _counts(result.one())


async def raw_daily_counts_since(
    session: AsyncSession,
    monitor_id: str,
    since: date,
) -> Dict[str, StatusCounts]:
    """Per-day counts from raw checks, keyed by YYYY-MM-DD."""
    day = func.date(Check.checked_at)
    result = await session.execute(
        select(day, *_count_columns())
        .where(
            Check.monitor_id == monitor_id,
            Check.checked_at >= datetime.combine(since, datetime.min.time()),
        )
        .group_by(day)
    )
    # SQLite returns 'YYYY-MM-DD' strings, PostgreSQL returns dates
    return {str(row[0])[:10]: _counts(row[1:]) for row in result.all()}


async def daily_rollups_since(session: AsyncSession, monitor_id: str, since: date) -> List[DailyStatus]:
    result = await session.execute(
        select(DailyStatus)
        .where(DailyStatus.monitor_id == monitor_id, DailyStatus.date >= since.isoformat())
        .order_by(DailyStatus.date.asc())
    )
    return list(result.scalars().all())


async def counts_by_monitor_for_day(session: AsyncSession, day: date) -> Dict[str, StatusCounts]:
    """Per-monitor counts of raw checks on one UTC day."""
    start = datetime.combine(day, datetime.min.time())
    end = start + timedelta(days=1)
    result = await session.execute(
        select(Check.monitor_id, *_count_columns())
        .where(Check.checked_at >= start, Check.checked_at < end)
        .group_by(Check.monitor_id)
    )
    return {row[0]: _counts(row[1:]) for row in result.all()}


async def upsert_daily_status(
    session: AsyncSession,
    monitor_id: str,
    day: str,
    counts: StatusCounts,
    downtime_minutes: int,
) -> DailyStatus:
    rollup = await session.get(DailyStatus, (monitor_id, day))
    if rollup is None:
        rollup = DailyStatus(monitor_id=monitor_id, date=day)
        session.add(rollup)
    rollup.total_checks = counts.total
    rollup.up_checks = counts.up
    rollup.down_checks = counts.down
    rollup.degraded_checks = counts.degraded
    rollup.downtime_minutes = downtime_minutes
    await session.flush()
    return rollup


async def cleanup_old_daily_status(session: AsyncSession, keep_days: int) -> int:
    cutoff = (datetime.utcnow() - timedelta(days=keep_days)).date().isoformat()
    result = await session.execute(delete(DailyStatus).where(DailyStatus.date < cutoff))
    return result.rowcount or 0
