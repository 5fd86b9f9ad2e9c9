"""External sweep trigger for deployments that schedule from outside."""
import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException

from ..config import settings
from ..schemas.status import SweepSummary
from ..services.scheduler import scheduler_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.post("", response_model=SweepSummary)
async def run_cron(x_cron_secret: Optional[str] = Header(None)):
    """Run one sweep now. Requires the configured X-Cron-Secret."""
    if not settings.cron_secret or x_cron_secret != settings.cron_secret:
        raise HTTPException(status_code=403, detail="Forbidden")
    
    summary = await scheduler_service.run_sweep()
    logger.info(f"Cron sweep: {summary.checked} checked, {summary.failed} failed")
    return summary
