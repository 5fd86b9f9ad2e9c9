"""Monitor API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..crud import monitors as monitor_crud
from ..crud import notifications as notification_crud
from ..database import get_db
from ..schemas.monitor import CheckResponse, MonitorCreate, MonitorResponse
from ..schemas.notification import MonitorNotificationInput
from ..services.script_engine import validate_script
from ..utils.db_utils import retry_on_lock

router = APIRouter(prefix="/api/monitors", tags=["monitors"])


@router.get("", response_model=List[MonitorResponse])
async def list_monitors(db: AsyncSession = Depends(get_db)):
    return await monitor_crud.get_all_monitors(db)


@router.post("", response_model=MonitorResponse, status_code=201)
async def create_monitor(monitor: MonitorCreate, db: AsyncSession = Depends(get_db)):
    """Create a monitor. Script monitors must carry a valid script document."""
    if monitor.type == "script":
        validation = validate_script(monitor.script)
        if not validation.valid:
            raise HTTPException(status_code=400, detail=validation.error)
    
    fields = monitor.model_dump()
    fields["active"] = 1 if fields["active"] else 0
    db_monitor = await monitor_crud.create_monitor(db, **fields)
    await retry_on_lock(db.commit)
    await db.refresh(db_monitor)
    return db_monitor


@router.get("/{monitor_id}/checks", response_model=List[CheckResponse])
async def list_checks(
    monitor_id: str,
    limit: int = Query(default=100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """Most recent checks, newest first."""
    if not await monitor_crud.get_monitor(db, monitor_id):
        raise HTTPException(status_code=404, detail="Monitor not found")
    return await monitor_crud.get_recent_checks(db, monitor_id, limit)


@router.put("/{monitor_id}/notifications", status_code=204)
async def set_notifications(
    monitor_id: str,
    subscriptions: List[MonitorNotificationInput],
    db: AsyncSession = Depends(get_db),
):
    """Replace the channels a monitor notifies."""
    if not await monitor_crud.get_monitor(db, monitor_id):
        raise HTTPException(status_code=404, detail="Monitor not found")
    for item in subscriptions:
        if not await notification_crud.get_channel(db, item.channel_id):
            raise HTTPException(status_code=400, detail=f"Unknown channel: {item.channel_id}")
    
    await notification_crud.set_monitor_notifications(
        db,
        monitor_id,
        [(item.channel_id, item.notify_on, item.downtime_threshold_s) for item in subscriptions],
    )
    await retry_on_lock(db.commit)
