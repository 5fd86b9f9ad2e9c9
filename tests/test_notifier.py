from __future__ import annotations

import json
import os
from datetime import datetime, timedelta

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from pingwatch.crud import monitors as monitor_crud
from pingwatch.crud import notifications as notification_crud
from pingwatch.models import Incident, MonitorNotification, NotificationChannel
from pingwatch.models.settings import VAPID_KEYS
from pingwatch.services.notifier import NO_SUBSCRIPTIONS_ERROR, NotifierService, build_payload, should_notify
from pingwatch.services.results import CheckResult
from pingwatch.services.vapid import b64url_encode, generate_vapid_keys, public_key_bytes


class Hooks:
    """MockTransport handler answering per host and recording every request."""

    def __init__(self, statuses: dict[str, int] | None = None):
        self.statuses = statuses or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.get(request.url.host, 200)
        return httpx.Response(status, text="ok" if status < 400 else "nope")

    def hosts(self) -> list[str]:
        return sorted(r.url.host for r in self.requests)


async def setup_monitor(session, make_script, channels):
    """Create a monitor subscribed to (type, name, config, notify_on, threshold) channels."""
    monitor = await monitor_crud.create_monitor(
        session, name="Checkout API", script=make_script("https://shop.test/health")
    )
    subscriptions = []
    for channel_type, name, config, notify_on, threshold in channels:
        channel = await notification_crud.create_channel(session, channel_type, name, config)
        subscriptions.append((channel.id, notify_on, threshold))
    await notification_crud.set_monitor_notifications(session, monitor.id, subscriptions)
    await session.commit()
    return monitor


def test_should_notify_rules() -> None:
    channel = NotificationChannel(type="slack", name="ops", config="{}", active=1)
    subscription = MonitorNotification(notify_on="down,up", downtime_threshold_s=300)
    now = datetime(2026, 10, 18, 12, 0, 0)
    young = Incident(title="outage", created_at=now - timedelta(seconds=60))
    old = Incident(title="outage", created_at=now - timedelta(seconds=600))

    assert should_notify(channel, subscription, "down", None, now)
    assert should_notify(channel, subscription, "down", old, now)
    assert not should_notify(channel, subscription, "down", young, now)
    # The threshold only debounces outages
    assert should_notify(channel, subscription, "up", young, now)
    assert not should_notify(channel, subscription, "degraded", None, now)

    channel.active = 0
    assert not should_notify(channel, subscription, "down", None, now)


@pytest.mark.asyncio
async def test_build_payload_uses_first_step_url_and_check_result(session, make_script) -> None:
    monitor = await monitor_crud.create_monitor(session, name="API", script=make_script("https://api.test/ping"))
    created = datetime(2026, 10, 18, 10, 0, 0)
    incident = Incident(title="x", created_at=created, resolved_at=created + timedelta(minutes=3, seconds=5))
    result = CheckResult(status="up", response_time_ms=123, error_message=None)

    payload = build_payload(monitor, "down", "up", incident, result)

    assert payload.url == "https://api.test/ping"
    assert payload.response_time_ms == 123
    assert payload.incident_duration == 185
    assert payload.previous_status == "down"
    assert payload.timestamp.endswith("Z")


@pytest.mark.asyncio
async def test_unchanged_status_sends_nothing(session, make_script) -> None:
    hooks = Hooks()
    monitor = await setup_monitor(session, make_script, [
        ("slack", "ops", {"webhookUrl": "https://slack.test/a"}, ["down", "up"], 0),
    ])

    summary = await NotifierService(transport=httpx.MockTransport(hooks)).send_notifications(
        session, monitor, "down", "down", None
    )

    assert (summary.sent, summary.failed, summary.errors) == (0, 0, [])
    assert hooks.requests == []


@pytest.mark.asyncio
async def test_fan_out_collects_successes_and_failures(session, make_script) -> None:
    hooks = Hooks({"discord.test": 500})
    monitor = await setup_monitor(session, make_script, [
        ("slack", "ops-slack", {"webhookUrl": "https://slack.test/a"}, ["down", "up"], 0),
        ("discord", "ops-discord", {"webhookUrl": "https://discord.test/b"}, ["down"], 0),
        ("webhook", "pager", {"url": "https://hooks.test/in", "bodyTemplate": "{\"s\": \"{{status}}\"}"}, ["down"], 0),
        ("webhook", "recoveries-only", {"url": "https://other.test/in"}, ["up"], 0),
    ])

    summary = await NotifierService(transport=httpx.MockTransport(hooks)).send_notifications(
        session, monitor, "up", "down", None, CheckResult(status="down", error_message="boom")
    )

    assert summary.sent == 2
    assert summary.failed == 1
    assert summary.errors == ["ops-discord: Discord webhook failed: 500 nope"]
    assert hooks.hosts() == ["discord.test", "hooks.test", "slack.test"]
    pager = next(r for r in hooks.requests if r.url.host == "hooks.test")
    assert json.loads(pager.content) == {"s": "down"}


@pytest.mark.asyncio
async def test_broken_channel_config_is_reported_not_raised(session, make_script) -> None:
    hooks = Hooks()
    monitor = await setup_monitor(session, make_script, [
        ("slack", "broken", {}, ["down"], 0),
        ("webhook", "fine", {"url": "https://hooks.test/in"}, ["down"], 0),
    ])

    summary = await NotifierService(transport=httpx.MockTransport(hooks)).send_notifications(
        session, monitor, None, "down", None
    )

    assert summary.sent == 1
    assert summary.failed == 1
    assert summary.errors[0].startswith("broken: Invalid slack config")


@pytest.mark.asyncio
async def test_downtime_threshold_holds_back_young_outages(session, make_script) -> None:
    hooks = Hooks()
    monitor = await setup_monitor(session, make_script, [
        ("webhook", "patient", {"url": "https://patient.test/in"}, ["down"], 600),
        ("webhook", "eager", {"url": "https://eager.test/in"}, ["down"], 0),
    ])
    incident = Incident(title="outage", created_at=datetime.utcnow() - timedelta(seconds=30))

    summary = await NotifierService(transport=httpx.MockTransport(hooks)).send_notifications(
        session, monitor, "up", "down", incident
    )

    assert summary.sent == 1
    assert hooks.hosts() == ["eager.test"]


async def add_push_subscriber(session, endpoint: str):
    receiver = ec.generate_private_key(ec.SECP256R1())
    return await notification_crud.add_push_subscription(
        session,
        endpoint=endpoint,
        p256dh=b64url_encode(public_key_bytes(receiver.public_key())),
        auth=b64url_encode(os.urandom(16)),
    )


@pytest.mark.asyncio
async def test_webpush_prunes_expired_subscriptions(session, make_script) -> None:
    await notification_crud.insert_setting_if_absent(session, VAPID_KEYS, generate_vapid_keys().to_json())
    await add_push_subscriber(session, "https://push.test/live")
    await add_push_subscriber(session, "https://gone.test/dead")
    monitor = await setup_monitor(session, make_script, [
        ("webpush", "browsers", {}, ["down", "up"], 0),
    ])
    hooks = Hooks({"gone.test": 410})

    summary = await NotifierService(transport=httpx.MockTransport(hooks)).send_notifications(
        session, monitor, "up", "down", None
    )
    await session.commit()

    assert summary.sent == 1
    assert summary.failed == 0
    remaining = [s.endpoint for s in await notification_crud.get_push_subscriptions(session)]
    assert remaining == ["https://push.test/live"]


@pytest.mark.asyncio
async def test_webpush_channel_bound_to_one_subscription(session, make_script) -> None:
    await notification_crud.insert_setting_if_absent(session, VAPID_KEYS, generate_vapid_keys().to_json())
    mine = await add_push_subscriber(session, "https://push.test/mine")
    await add_push_subscriber(session, "https://push.test/theirs")
    monitor = await setup_monitor(session, make_script, [
        ("webpush", "my browser", {"subscriptionId": mine.id}, ["down"], 0),
    ])
    hooks = Hooks()

    summary = await NotifierService(transport=httpx.MockTransport(hooks)).send_notifications(
        session, monitor, "up", "down", None
    )

    assert summary.sent == 1
    assert [r.url.path for r in hooks.requests] == ["/mine"]


@pytest.mark.asyncio
async def test_webpush_without_vapid_keys_fails(session, make_script) -> None:
    await add_push_subscriber(session, "https://push.test/live")
    monitor = await setup_monitor(session, make_script, [("webpush", "browsers", {}, ["down"], 0)])

    summary = await NotifierService(transport=httpx.MockTransport(Hooks())).send_notifications(
        session, monitor, "up", "down", None
    )

    assert summary.errors == ["browsers: VAPID keys not configured"]


@pytest.mark.asyncio
async def test_test_notification(session) -> None:
    hooks = Hooks()
    notifier = NotifierService(transport=httpx.MockTransport(hooks))
    slack = await notification_crud.create_channel(session, "slack", "ops", {"webhookUrl": "https://slack.test/a"})
    push = await notification_crud.create_channel(session, "webpush", "browsers", {})
    await session.commit()

    result = await notifier.send_test_notification(session, slack)
    assert result.success
    body = json.loads(hooks.requests[0].content)
    assert body["attachments"][0]["blocks"][0]["text"]["text"] == ":x: Monitor DOWN: Test Monitor"

    no_subscribers = await notifier.send_test_notification(session, push)
    assert not no_subscribers.success
    assert no_subscribers.error == NO_SUBSCRIPTIONS_ERROR
