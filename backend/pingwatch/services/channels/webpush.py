"""Web Push encoder - RFC 8291 message encryption with VAPID (RFC 8292) auth.

Each subscription gets its own ephemeral ECDH key and salt. The encrypted
record is a single aes128gcm record:

    salt (16) | record size (4, big endian) | key id length (1) | sender key (65) | ciphertext
"""
import asyncio
import json
import logging
import os
import struct
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import urlsplit

import httpx
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ...models.notification import PushSubscription
from ...schemas.notification import NotificationPayload
from ..results import PushSendResult
from ..vapid import VapidKeys, b64url_decode, b64url_encode, public_key_bytes

logger = logging.getLogger(__name__)

RECORD_SIZE = 4096
TTL_SECONDS = 86400
JWT_LIFETIME_SECONDS = 12 * 60 * 60

# Delimiter appended to the plaintext of the last (only) record
PADDING_DELIMITER = b"\x02"


def _hkdf(salt: bytes, ikm: bytes, info: bytes, length: int) -> bytes:
    return HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)


def encrypt_payload(
    plaintext: bytes,
    p256dh: str,
    auth: str,
    salt: Optional[bytes] = None,
    sender_key: Optional[ec.EllipticCurvePrivateKey] = None,
) -> bytes:
    """Encrypt one push message for a subscriber.
    
    Args:
        plaintext: Message body (JSON bytes)
        p256dh: Subscriber public key, base64url
        auth: Subscriber auth secret, base64url
        salt: 16 random bytes; generated when omitted
        sender_key: Ephemeral P-256 key; generated when omitted
        
    Returns:
        The complete aes128gcm-encoded body
    """
    salt = salt if salt is not None else os.urandom(16)
    sender_key = sender_key or ec.generate_private_key(ec.SECP256R1())
    
    ua_public = b64url_decode(p256dh)
    auth_secret = b64url_decode(auth)
    receiver_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), ua_public)
    as_public = public_key_bytes(sender_key.public_key())
    
    shared_secret = sender_key.exchange(ec.ECDH(), receiver_key)
    key_info = b"WebPush: info\x00" + ua_public + as_public
    ikm = _hkdf(auth_secret, shared_secret, key_info, 32)
    cek = _hkdf(salt, ikm, b"Content-Encoding: aes128gcm\x00", 16)
    nonce = _hkdf(salt, ikm, b"Content-Encoding: nonce\x00", 12)
    
    ciphertext = AESGCM(cek).encrypt(nonce, plaintext + PADDING_DELIMITER, None)
    header = salt + struct.pack(">I", RECORD_SIZE) + bytes([len(as_public)]) + as_public
    return header + ciphertext


def push_audience(endpoint: str) -> str:
    """Origin of the push service, used as the JWT audience."""
    parts = urlsplit(endpoint)
    return f"{parts.scheme}://{parts.netloc}"


def build_vapid_jwt(vapid_keys: VapidKeys, audience: str, subject: str, now: Optional[int] = None) -> str:
    """ES256-signed JWT with raw r||s signature."""
    now = int(time.time()) if now is None else now
    header = {"typ": "JWT", "alg": "ES256"}
    claims = {"aud": audience, "exp": now + JWT_LIFETIME_SECONDS, "sub": subject}
    
    signing_input = ".".join(
        b64url_encode(json.dumps(part, separators=(",", ":")).encode())
        for part in (header, claims)
    )
    der = vapid_keys.signing_key().sign(signing_input.encode("ascii"), ec.ECDSA(hashes.SHA256()))
    r, s = decode_dss_signature(der)
    signature = r.to_bytes(32, "big") + s.to_bytes(32, "big")
    return f"{signing_input}.{b64url_encode(signature)}"


def build_headers(vapid_keys: VapidKeys, endpoint: str, subject: str) -> dict:
    jwt = build_vapid_jwt(vapid_keys, push_audience(endpoint), subject)
    return {
        "Content-Type": "application/octet-stream",
        "Content-Encoding": "aes128gcm",
        "TTL": str(TTL_SECONDS),
        "Authorization": f"vapid t={jwt}, k={vapid_keys.public_key}",
        "Crypto-Key": f"p256ecdsa={vapid_keys.public_key}",
    }


def build_message(payload: NotificationPayload) -> dict:
    """Notification shown by the service worker."""
    if payload.is_recovery:
        title = f"Recovered: {payload.monitor_name}"
    else:
        title = f"{payload.status.upper()}: {payload.monitor_name}"
    
    body = f"Status: {payload.status.upper()}"
    if payload.url:
        body += f"\nURL: {payload.url}"
    if payload.error_message:
        body += f"\nError: {payload.error_message}"
    
    return {
        "title": title,
        "body": body,
        "icon": "/favicon.png",
        "badge": "/favicon.png",
        "data": {
            "monitorId": payload.monitor_id,
            "status": payload.status,
            "url": "/",
        },
    }


@dataclass
class _Delivery:
    endpoint: str
    success: bool
    invalid: bool = False
    error: Optional[str] = None


async def send_to_subscription(
    subscription: PushSubscription,
    message: bytes,
    vapid_keys: VapidKeys,
    subject: str,
    client: httpx.AsyncClient,
) -> _Delivery:
    endpoint = subscription.endpoint
    try:
        body = encrypt_payload(message, subscription.p256dh, subscription.auth)
        headers = build_headers(vapid_keys, endpoint, subject)
        response = await client.post(endpoint, content=body, headers=headers)
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        return _Delivery(endpoint, success=False, error=f"Push error: {e}")
    
    if response.status_code in (404, 410):
        return _Delivery(endpoint, success=False, invalid=True)
    if not response.is_success:
        return _Delivery(endpoint, success=False, error=f"Push failed: {response.status_code} {response.text}")
    return _Delivery(endpoint, success=True)


async def send_to_subscriptions(
    subscriptions: Sequence[PushSubscription],
    payload: NotificationPayload,
    vapid_keys: VapidKeys,
    subject: str,
    client: httpx.AsyncClient,
) -> PushSendResult:
    """Encrypt and deliver the payload to every subscription concurrently.
    
    Endpoints answering 404/410 are gone; they are reported in
    invalid_endpoints for pruning and do not fail the send.
    """
    if not subscriptions:
        return PushSendResult(success=True)
    
    message = json.dumps(build_message(payload)).encode()
    deliveries: List[_Delivery] = await asyncio.gather(*(
        send_to_subscription(sub, message, vapid_keys, subject, client)
        for sub in subscriptions
    ))
    
    sent = sum(1 for d in deliveries if d.success)
    invalid = [d.endpoint for d in deliveries if d.invalid]
    errors = [d.error for d in deliveries if d.error]
    
    if invalid:
        logger.info(f"{len(invalid)} push subscription(s) expired")
    if errors:
        logger.warning(f"{len(errors)} push delivery(ies) failed")
        return PushSendResult(
            success=False,
            sent=sent,
            error=f"{len(errors)} push failed: {'; '.join(errors)}",
            invalid_endpoints=invalid,
        )
    return PushSendResult(success=True, sent=sent, invalid_endpoints=invalid)
