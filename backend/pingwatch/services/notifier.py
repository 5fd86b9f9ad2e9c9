"""Notifier service - fans a status change out to every subscribed channel."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..crud import notifications as notification_crud
from ..exceptions import ChannelConfigError
from ..models import Incident, Monitor, MonitorNotification, NotificationChannel, PushSubscription
from ..schemas.notification import (
    DiscordConfig,
    NotificationPayload,
    SlackConfig,
    WebhookConfig,
    WebPushConfig,
)
from .channels import discord, parse_channel_config, slack, webhook, webpush
from .results import ChannelSendResult, CheckResult, NotificationSummary
from .script_engine import first_request_url
from .vapid import VapidKeys, get_vapid_keys

logger = logging.getLogger(__name__)

NO_SUBSCRIPTIONS_ERROR = "No push subscriptions found. Enable notifications on the dashboard first."


def should_notify(
    channel: NotificationChannel,
    subscription: MonitorNotification,
    new_status: str,
    incident: Optional[Incident],
    now: Optional[datetime] = None,
) -> bool:
    """Whether a channel subscription wants to hear about new_status.

    A down notification is held back while the open incident is younger
    than the subscription's downtime threshold.
    """
    if not channel.active:
        return False
    if new_status not in subscription.notify_on_set:
        return False

    threshold = subscription.downtime_threshold_s or 0
    if new_status == "down" and threshold > 0 and incident is not None:
        now = now or datetime.utcnow()
        downtime = int((now - incident.created_at).total_seconds())
        if downtime < threshold:
            return False

    return True


def build_payload(
    monitor: Monitor,
    old_status: Optional[str],
    new_status: str,
    incident: Optional[Incident] = None,
    check_result: Optional[CheckResult] = None,
) -> NotificationPayload:
    incident_duration = None
    if incident is not None and incident.resolved_at and incident.created_at:
        incident_duration = int((incident.resolved_at - incident.created_at).total_seconds())

    return NotificationPayload(
        monitor_id=monitor.id,
        monitor_name=monitor.name,
        status=new_status,
        previous_status=old_status,
        url=first_request_url(monitor.script),
        response_time_ms=check_result.response_time_ms if check_result else None,
        error_message=check_result.error_message if check_result else None,
        timestamp=datetime.utcnow().isoformat() + "Z",
        incident_duration=incident_duration,
    )


def build_test_payload() -> NotificationPayload:
    return NotificationPayload(
        monitor_id="test-monitor-id",
        monitor_name="Test Monitor",
        status="down",
        previous_status="up",
        url="https://example.com/health",
        response_time_ms=1234,
        error_message="This is a test notification",
        timestamp=datetime.utcnow().isoformat() + "Z",
    )


@dataclass
class PushTargets:
    """Stored push state loaded once per dispatch, before any send starts."""
    subscriptions: List[PushSubscription] = field(default_factory=list)
    vapid_keys: Optional[VapidKeys] = None


@dataclass
class ChannelOutcome:
    result: ChannelSendResult
    invalid_endpoints: List[str] = field(default_factory=list)


class NotifierService:
    """Service for delivering notifications through configured channels.

    Database reads happen before the concurrent sends and writes (pruning
    dead push endpoints) after they are joined, so the session is never
    used from two tasks at once.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 10.0):
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _load_push_targets(self, session: AsyncSession) -> PushTargets:
        return PushTargets(
            subscriptions=await notification_crud.get_push_subscriptions(session),
            vapid_keys=await get_vapid_keys(session),
        )

    async def _prune(self, session: AsyncSession, endpoints: Sequence[str]):
        for endpoint in endpoints:
            await notification_crud.remove_push_subscription(session, endpoint)
            logger.info(f"Removed expired push subscription {endpoint[:48]}...")

    async def _send_webpush(
        self,
        config: WebPushConfig,
        payload: NotificationPayload,
        client: httpx.AsyncClient,
        targets: PushTargets,
    ) -> ChannelOutcome:
        subscriptions = targets.subscriptions
        if config.subscription_id:
            subscriptions = [s for s in subscriptions if s.id == config.subscription_id]
        if not subscriptions:
            return ChannelOutcome(ChannelSendResult(success=True))
        if targets.vapid_keys is None:
            return ChannelOutcome(ChannelSendResult(success=False, error="VAPID keys not configured"))

        result = await webpush.send_to_subscriptions(
            subscriptions, payload, targets.vapid_keys, settings.vapid_subject, client
        )
        # Partial delivery still counts as sent
        return ChannelOutcome(
            ChannelSendResult(success=result.sent > 0 or result.success, error=result.error),
            invalid_endpoints=result.invalid_endpoints,
        )

    async def _send_to_channel(
        self,
        channel: NotificationChannel,
        payload: NotificationPayload,
        client: httpx.AsyncClient,
        targets: PushTargets,
    ) -> ChannelOutcome:
        config = parse_channel_config(channel.type, channel.config)

        if isinstance(config, SlackConfig):
            outcome = ChannelOutcome(await slack.send(config, payload, client))
        elif isinstance(config, DiscordConfig):
            outcome = ChannelOutcome(await discord.send(config, payload, client))
        elif isinstance(config, WebhookConfig):
            outcome = ChannelOutcome(await webhook.send(config, payload, client))
        elif isinstance(config, WebPushConfig):
            outcome = await self._send_webpush(config, payload, client, targets)
        else:
            raise ChannelConfigError(f"Unknown channel type: {channel.type}")
        return outcome

    async def send_notifications(
        self,
        session: AsyncSession,
        monitor: Monitor,
        old_status: Optional[str],
        new_status: str,
        incident: Optional[Incident] = None,
        check_result: Optional[CheckResult] = None,
    ) -> NotificationSummary:
        """Notify every eligible channel of a status change.

        Returns:
            Counts of successful and failed sends, with one
            "channel name: error" entry per failure
        """
        if old_status == new_status:
            return NotificationSummary()

        subscribed = await notification_crud.get_channels_for_monitor(session, monitor.id)
        now = datetime.utcnow()
        channels = [
            channel for channel, subscription in subscribed
            if should_notify(channel, subscription, new_status, incident, now)
        ]
        if not channels:
            return NotificationSummary()

        payload = build_payload(monitor, old_status, new_status, incident, check_result)
        targets = PushTargets()
        if any(channel.type == "webpush" for channel in channels):
            targets = await self._load_push_targets(session)

        async with self._client() as client:
            outcomes = await asyncio.gather(
                *(self._send_to_channel(channel, payload, client, targets) for channel in channels),
                return_exceptions=True,
            )

        summary = NotificationSummary()
        invalid_endpoints = []
        for channel, outcome in zip(channels, outcomes):
            if isinstance(outcome, Exception):
                summary.failed += 1
                summary.errors.append(f"{channel.name}: {outcome}")
                logger.error(f"Notification to {channel.name} raised: {outcome}")
                continue
            invalid_endpoints.extend(outcome.invalid_endpoints)
            if outcome.result.success:
                summary.sent += 1
            else:
                summary.failed += 1
                if outcome.result.error:
                    summary.errors.append(f"{channel.name}: {outcome.result.error}")

        await self._prune(session, sorted(set(invalid_endpoints)))

        logger.info(
            f"Notifications for {monitor.name} ({old_status} -> {new_status}): "
            f"{summary.sent} sent, {summary.failed} failed"
        )
        return summary

    async def send_test_notification(
        self,
        session: AsyncSession,
        channel: NotificationChannel,
    ) -> ChannelSendResult:
        """Send a canned DOWN notification through one channel."""
        targets = PushTargets()
        if channel.type == "webpush":
            targets = await self._load_push_targets(session)
            if not targets.subscriptions:
                return ChannelSendResult(success=False, error=NO_SUBSCRIPTIONS_ERROR)

        try:
            async with self._client() as client:
                outcome = await self._send_to_channel(channel, build_test_payload(), client, targets)
        except ChannelConfigError as e:
            return ChannelSendResult(success=False, error=str(e))

        await self._prune(session, outcome.invalid_endpoints)
        return outcome.result


# Global instance
notifier_service = NotifierService()
