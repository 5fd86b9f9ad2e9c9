"""Status page API."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..crud import monitors as monitor_crud
from ..database import get_db
from ..schemas.status import StatusMonitor, StatusPage
from ..services.status import get_status_monitor, get_status_page

router = APIRouter(prefix="/api/status", tags=["status"])


@router.get("", response_model=StatusPage)
async def get_status(db: AsyncSession = Depends(get_db)):
    """Overall status plus effective status, uptime and 90 daily buckets per monitor."""
    return await get_status_page(db)


@router.get("/{monitor_id}", response_model=StatusMonitor)
async def get_monitor_status(monitor_id: str, db: AsyncSession = Depends(get_db)):
    monitor = await monitor_crud.get_monitor(db, monitor_id)
    if not monitor:
        raise HTTPException(status_code=404, detail="Monitor not found")
    return await get_status_monitor(db, monitor)
