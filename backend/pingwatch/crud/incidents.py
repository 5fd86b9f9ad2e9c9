"""Incident queries."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Incident


async def get_open_incident_for_group(
    session: AsyncSession,
    group_id: Optional[str],
) -> Optional[Incident]:
    """Most recent unresolved incident for a monitor group."""
    if not group_id:
        return None
    result = await session.execute(
        select(Incident)
        .where(Incident.group_id == group_id, Incident.resolved_at.is_(None))
        .order_by(Incident.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
