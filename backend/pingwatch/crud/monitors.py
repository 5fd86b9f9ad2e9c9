"""Monitor and check queries."""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Monitor, Check
from ..services.results import CheckResult


async def get_active_monitors(session: AsyncSession) -> List[Monitor]:
    result = await session.execute(
        select(Monitor).where(Monitor.active == 1).order_by(Monitor.created_at.desc())
    )
    return list(result.scalars().all())


async def get_all_monitors(session: AsyncSession) -> List[Monitor]:
    result = await session.execute(select(Monitor).order_by(Monitor.name.asc()))
    return list(result.scalars().all())


async def get_monitor(session: AsyncSession, monitor_id: str) -> Optional[Monitor]:
    return await session.get(Monitor, monitor_id)


async def create_monitor(session: AsyncSession, **fields) -> Monitor:
    """Add a monitor and flush so its id is populated."""
    monitor = Monitor(**fields)
    session.add(monitor)
    await session.flush()
    return monitor


async def get_recent_checks(session: AsyncSession, monitor_id: str, limit: int = 100) -> List[Check]:
    """Most recent checks, newest first."""
    result = await session.execute(
        select(Check)
        .where(Check.monitor_id == monitor_id)
        .order_by(Check.checked_at.desc(), Check.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_last_check(session: AsyncSession, monitor_id: str) -> Optional[Check]:
    checks = await get_recent_checks(session, monitor_id, limit=1)
    return checks[0] if checks else None


async def insert_check(
    session: AsyncSession,
    monitor_id: str,
    result: CheckResult,
    checked_from: Optional[str] = None,
    checked_at: Optional[datetime] = None,
) -> Check:
    """Record a check result. The caller commits."""
    check = Check(
        monitor_id=monitor_id,
        status=result.status,
        response_time_ms=result.response_time_ms,
        status_code=result.status_code,
        error_message=result.error_message,
        checked_from=checked_from,
        checked_at=checked_at or datetime.utcnow(),
    )
    session.add(check)
    await session.flush()
    return check


async def cleanup_old_checks(session: AsyncSession, retention_days: int = 7) -> int:
    """Delete raw checks older than the retention window."""
    cutoff = datetime.utcnow() - timedelta(days=retention_days)
    result = await session.execute(delete(Check).where(Check.checked_at < cutoff))
    return result.rowcount or 0
