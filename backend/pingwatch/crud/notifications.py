"""Notification channel, subscription, push endpoint and settings queries."""
import json
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import AppSetting, MonitorNotification, NotificationChannel, PushSubscription


async def get_channel(session: AsyncSession, channel_id: str) -> Optional[NotificationChannel]:
    return await session.get(NotificationChannel, channel_id)


async def get_all_channels(session: AsyncSession) -> List[NotificationChannel]:
    result = await session.execute(
        select(NotificationChannel).order_by(NotificationChannel.created_at)
    )
    return list(result.scalars().all())


async def create_channel(
    session: AsyncSession,
    channel_type: str,
    name: str,
    config: dict,
    active: bool = True,
) -> NotificationChannel:
    channel = NotificationChannel(
        type=channel_type,
        name=name,
        config=json.dumps(config),
        active=1 if active else 0,
    )
    session.add(channel)
    await session.flush()
    return channel


async def get_channels_for_monitor(
    session: AsyncSession,
    monitor_id: str,
) -> List[Tuple[NotificationChannel, MonitorNotification]]:
    """Channels a monitor is subscribed to, with the subscription row."""
    result = await session.execute(
        select(NotificationChannel, MonitorNotification)
        .join(MonitorNotification, MonitorNotification.channel_id == NotificationChannel.id)
        .where(MonitorNotification.monitor_id == monitor_id)
    )
    return [(channel, subscription) for channel, subscription in result.all()]


async def set_monitor_notifications(
    session: AsyncSession,
    monitor_id: str,
    subscriptions: Iterable[Tuple[str, Iterable[str], int]],
) -> None:
    """Replace a monitor's subscriptions with (channel_id, notify_on, threshold_s) tuples."""
    await session.execute(
        delete(MonitorNotification).where(MonitorNotification.monitor_id == monitor_id)
    )
    for channel_id, notify_on, threshold in subscriptions:
        session.add(MonitorNotification(
            monitor_id=monitor_id,
            channel_id=channel_id,
            notify_on=",".join(notify_on),
            downtime_threshold_s=threshold,
        ))
    await session.flush()


async def get_push_subscriptions(session: AsyncSession) -> List[PushSubscription]:
    result = await session.execute(
        select(PushSubscription).order_by(PushSubscription.created_at.desc())
    )
    return list(result.scalars().all())


async def get_push_subscription_by_endpoint(session: AsyncSession, endpoint: str) -> Optional[PushSubscription]:
    result = await session.execute(
        select(PushSubscription).where(PushSubscription.endpoint == endpoint)
    )
    return result.scalar_one_or_none()


async def add_push_subscription(
    session: AsyncSession,
    endpoint: str,
    p256dh: str,
    auth: str,
    user_agent: Optional[str] = None,
) -> PushSubscription:
    """Insert a subscription, or refresh the keys of an existing endpoint."""
    subscription = await get_push_subscription_by_endpoint(session, endpoint)
    if subscription:
        subscription.p256dh = p256dh
        subscription.auth = auth
        subscription.user_agent = user_agent
    else:
        subscription = PushSubscription(
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
            user_agent=user_agent,
        )
        session.add(subscription)
    await session.flush()
    return subscription


async def remove_push_subscription(session: AsyncSession, endpoint: str) -> bool:
    result = await session.execute(
        delete(PushSubscription).where(PushSubscription.endpoint == endpoint)
    )
    return (result.rowcount or 0) > 0


async def get_setting(session: AsyncSession, key: str) -> Optional[str]:
    setting = await session.get(AppSetting, key)
    return setting.value if setting else None


async def insert_setting_if_absent(session: AsyncSession, key: str, value: str) -> bool:
    """Insert a setting unless the key exists. Returns True if this call inserted it."""
    try:
        async with session.begin_nested():
            session.add(AppSetting(key=key, value=value))
    except IntegrityError:
        return False
    return True
