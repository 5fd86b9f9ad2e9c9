from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from pingwatch.config import settings
from pingwatch.database import get_db
from pingwatch.main import app
from pingwatch.schemas.status import SweepSummary
from pingwatch.services.scheduler import scheduler_service


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    # ASGITransport does not run the lifespan, so no scheduler or real database
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://pingwatch.test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_validate_script_endpoint(client) -> None:
    ok = await client.post("/api/scripts/validate", json={
        "script": '{"steps": [{"name": "a", "request": {"method": "GET", "url": "https://x.test"}}]}'
    })
    assert ok.json() == {"valid": True, "error": None}

    bad = await client.post("/api/scripts/validate", json={"script": '{"steps": []}'})
    assert bad.json() == {"valid": False, "error": "Script must have at least one step"}


@pytest.mark.asyncio
async def test_cron_requires_secret(client, monkeypatch) -> None:
    monkeypatch.setattr(settings, "cron_secret", None)
    assert (await client.post("/api/cron", headers={"X-Cron-Secret": "anything"})).status_code == 403

    monkeypatch.setattr(settings, "cron_secret", "s3cret")
    assert (await client.post("/api/cron")).status_code == 403
    assert (await client.post("/api/cron", headers={"X-Cron-Secret": "wrong"})).status_code == 403

    async def fake_sweep():
        return SweepSummary(message="Checks completed", checked=3, successful=3, failed=0, results=[])

    monkeypatch.setattr(scheduler_service, "run_sweep", fake_sweep)
    response = await client.post("/api/cron", headers={"X-Cron-Secret": "s3cret"})
    assert response.status_code == 200
    assert response.json()["checked"] == 3


@pytest.mark.asyncio
async def test_vapid_key_is_created_once(client) -> None:
    first = (await client.get("/api/push/vapid-key")).json()
    second = (await client.get("/api/push/vapid-key")).json()
    assert first["publicKey"]
    assert first == second


@pytest.mark.asyncio
async def test_subscribe_creates_one_channel_per_endpoint(client) -> None:
    body = {"endpoint": "https://push.test/abc", "keys": {"p256dh": "BPk", "auth": "c2VjcmV0"}}
    headers = {"User-Agent": "Mozilla/5.0 Firefox/131.0"}

    first = await client.post("/api/push/subscribe", json=body, headers=headers)
    again = await client.post("/api/push/subscribe", json=body, headers=headers)

    assert first.json()["success"] is True
    assert first.json()["subscriptionId"] == again.json()["subscriptionId"]

    channels = (await client.get("/api/notification-channels")).json()
    assert len(channels) == 1
    assert channels[0]["type"] == "webpush"
    assert channels[0]["name"] == "Firefox Push"
    assert channels[0]["config"] == {"subscriptionId": first.json()["subscriptionId"]}


@pytest.mark.asyncio
async def test_channel_creation_validates_config(client) -> None:
    bad = await client.post("/api/notification-channels", json={"type": "slack", "name": "ops", "config": {}})
    assert bad.status_code == 400

    created = await client.post("/api/notification-channels", json={
        "type": "webhook", "name": "pager", "config": {"url": "https://hooks.test", "bodyTemplate": "{{status}}"}
    })
    assert created.status_code == 201
    assert created.json()["config"] == {"url": "https://hooks.test", "method": "POST", "headers": {}, "bodyTemplate": "{{status}}"}


@pytest.mark.asyncio
async def test_test_endpoint_for_unknown_channel(client) -> None:
    response = await client.post("/api/notification-channels/does-not-exist/test")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_monitor_lifecycle_and_status_page(client) -> None:
    bad = await client.post("/api/monitors", json={"name": "API", "script": '{"steps": []}'})
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Script must have at least one step"

    script = '{"steps": [{"name": "a", "request": {"method": "GET", "url": "https://x.test"}}]}'
    created = await client.post("/api/monitors", json={"name": "API", "script": script})
    assert created.status_code == 201
    monitor_id = created.json()["id"]

    assert (await client.get(f"/api/monitors/{monitor_id}/checks")).json() == []

    status = (await client.get("/api/status")).json()
    assert status["overall_status"] == "operational"
    assert status["monitors"][0]["current_status"] is None
    assert status["monitors"][0]["uptime_24h"] == 100.0
    assert len(status["monitors"][0]["daily_status"]) == 90

    assert (await client.get("/api/status/nope")).status_code == 404
