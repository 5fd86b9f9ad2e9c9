"""Notification channel API endpoints."""
import json
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..crud import notifications as notification_crud
from ..database import get_db
from ..exceptions import ChannelConfigError
from ..models import NotificationChannel
from ..schemas.notification import (
    ChannelTestResponse,
    NotificationChannelCreate,
    NotificationChannelResponse,
)
from ..services.channels import parse_channel_config
from ..services.notifier import notifier_service
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notification-channels", tags=["notification-channels"])


def _to_response(channel: NotificationChannel) -> NotificationChannelResponse:
    try:
        config = json.loads(channel.config or "{}")
    except json.JSONDecodeError:
        config = {}
    return NotificationChannelResponse(
        id=channel.id,
        type=channel.type,
        name=channel.name,
        config=config,
        active=bool(channel.active),
        created_at=channel.created_at,
    )


@router.get("", response_model=List[NotificationChannelResponse])
async def list_channels(db: AsyncSession = Depends(get_db)):
    channels = await notification_crud.get_all_channels(db)
    return [_to_response(channel) for channel in channels]


@router.post("", response_model=NotificationChannelResponse, status_code=201)
async def create_channel(channel: NotificationChannelCreate, db: AsyncSession = Depends(get_db)):
    """Create a channel after validating its config for the channel type."""
    try:
        config = parse_channel_config(channel.type, channel.config)
    except ChannelConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    
    db_channel = await notification_crud.create_channel(
        db,
        channel.type,
        channel.name,
        config.model_dump(by_alias=True, exclude_none=True),
        channel.active,
    )
    await retry_on_lock(db.commit)
    await db.refresh(db_channel)
    return _to_response(db_channel)


@router.post("/{channel_id}/test", response_model=ChannelTestResponse)
async def test_channel(channel_id: str, db: AsyncSession = Depends(get_db)):
    """Send a sample DOWN notification through one channel."""
    channel = await notification_crud.get_channel(db, channel_id)
    if not channel:
        raise HTTPException(status_code=404, detail="Notification channel not found")
    
    result = await notifier_service.send_test_notification(db, channel)
    await retry_on_lock(db.commit)
    if not result.success:
        logger.warning(f"Test notification via {channel.name} failed: {result.error}")
    return ChannelTestResponse(success=result.success, error=result.error)
