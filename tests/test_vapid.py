from __future__ import annotations

import pytest

from pingwatch.crud import notifications as notification_crud
from pingwatch.models.settings import VAPID_KEYS
from pingwatch.services import vapid
from pingwatch.services.vapid import VapidKeys, b64url_decode, b64url_encode, generate_vapid_keys


def test_b64url_round_trip_without_padding() -> None:
    for data in (b"", b"a", b"ab", b"abc", bytes(range(256))):
        encoded = b64url_encode(data)
        assert "=" not in encoded
        assert b64url_decode(encoded) == data


def test_generated_keys_are_raw_p256() -> None:
    keys = generate_vapid_keys()
    public = b64url_decode(keys.public_key)
    assert len(public) == 65
    assert public[0] == 0x04
    assert len(b64url_decode(keys.private_key)) == 32

    # The stored scalar reproduces the same public point
    derived = keys.signing_key().public_key()
    assert vapid.public_key_bytes(derived) == public


def test_keys_json_round_trip() -> None:
    keys = generate_vapid_keys()
    assert VapidKeys.from_json(keys.to_json()) == keys


@pytest.mark.asyncio
async def test_get_or_create_is_stable(session) -> None:
    first = await vapid.get_or_create_vapid_keys(session)
    await session.commit()
    second = await vapid.get_or_create_vapid_keys(session)
    assert first == second


@pytest.mark.asyncio
async def test_insert_if_absent_keeps_first_value(session) -> None:
    assert await notification_crud.insert_setting_if_absent(session, "k", "first")
    assert not await notification_crud.insert_setting_if_absent(session, "k", "second")
    await session.commit()
    assert await notification_crud.get_setting(session, "k") == "first"


@pytest.mark.asyncio
async def test_losing_a_creation_race_returns_the_winners_keys(session, monkeypatch) -> None:
    winner = generate_vapid_keys()
    assert await notification_crud.insert_setting_if_absent(session, VAPID_KEYS, winner.to_json())
    await session.commit()

    real_get = vapid.get_vapid_keys
    calls = []

    async def stale_first_read(s):
        # First read happens before the winner's insert became visible
        calls.append(1)
        if len(calls) == 1:
            return None
        return await real_get(s)

    monkeypatch.setattr(vapid, "get_vapid_keys", stale_first_read)

    keys = await vapid.get_or_create_vapid_keys(session)
    assert keys == winner
    assert len(calls) == 2
