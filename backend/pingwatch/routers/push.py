"""Browser push subscription API."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from ..crud import notifications as notification_crud
from ..database import get_db
from ..schemas.notification import PushSubscribeRequest, PushSubscribeResponse, VapidKeyResponse
from ..services.vapid import get_or_create_vapid_keys
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/push", tags=["push"])


def browser_name(user_agent: Optional[str]) -> str:
    """Short browser label for the auto-created channel. Order matters: Edge and Chrome both claim Safari."""
    if not user_agent:
        return "Browser"
    for marker, name in (("Firefox", "Firefox"), ("Edg", "Edge"), ("Chrome", "Chrome"), ("Safari", "Safari")):
        if marker in user_agent:
            return name
    return "Browser"


@router.get("/vapid-key", response_model=VapidKeyResponse)
async def get_vapid_key(db: AsyncSession = Depends(get_db)):
    """Public VAPID key for PushManager.subscribe(); created on first request."""
    keys = await get_or_create_vapid_keys(db)
    await retry_on_lock(db.commit)
    return VapidKeyResponse(public_key=keys.public_key)


@router.post("/subscribe", response_model=PushSubscribeResponse)
async def subscribe(
    request: PushSubscribeRequest,
    user_agent: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Store a browser subscription; a new endpoint also gets its own webpush channel."""
    existing = await notification_crud.get_push_subscription_by_endpoint(db, request.endpoint)
    subscription = await notification_crud.add_push_subscription(
        db,
        endpoint=request.endpoint,
        p256dh=request.keys.p256dh,
        auth=request.keys.auth,
        user_agent=user_agent,
    )
    
    if existing is None:
        await notification_crud.create_channel(
            db,
            "webpush",
            request.name or f"{browser_name(user_agent)} Push",
            {"subscriptionId": subscription.id},
        )
        logger.info(f"New push subscription {subscription.id}")
    
    await retry_on_lock(db.commit)
    return PushSubscribeResponse(success=True, subscription_id=subscription.id)
