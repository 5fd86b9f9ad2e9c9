"""VAPID keypair - one ECDSA P-256 key signing every Web Push request."""
import base64
import json
import logging
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from sqlalchemy.ext.asyncio import AsyncSession

from ..crud import notifications as notification_crud
from ..models.settings import VAPID_KEYS

logger = logging.getLogger(__name__)


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    text = text.strip()
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def public_key_bytes(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Uncompressed X9.62 point (65 bytes, 0x04 prefix)."""
    return public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


@dataclass(frozen=True)
class VapidKeys:
    """Keypair as stored: base64url raw public point and private scalar."""
    public_key: str
    private_key: str
    
    def signing_key(self) -> ec.EllipticCurvePrivateKey:
        scalar = int.from_bytes(b64url_decode(self.private_key), "big")
        return ec.derive_private_key(scalar, ec.SECP256R1())
    
    def to_json(self) -> str:
        return json.dumps({"publicKey": self.public_key, "privateKey": self.private_key})
    
    @classmethod
    def from_json(cls, raw: str) -> "VapidKeys":
        data = json.loads(raw)
        return cls(public_key=data["publicKey"], private_key=data["privateKey"])


def generate_vapid_keys() -> VapidKeys:
    """Create a fresh P-256 keypair."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    scalar = private_key.private_numbers().private_value.to_bytes(32, "big")
    return VapidKeys(
        public_key=b64url_encode(public_key_bytes(private_key.public_key())),
        private_key=b64url_encode(scalar),
    )


async def get_vapid_keys(session: AsyncSession) -> Optional[VapidKeys]:
    raw = await notification_crud.get_setting(session, VAPID_KEYS)
    return VapidKeys.from_json(raw) if raw else None


async def get_or_create_vapid_keys(session: AsyncSession) -> VapidKeys:
    """Return the stored keypair, creating it on first use.
    
    Concurrent first calls race on the insert; the loser reads back the
    winner's keys, so every caller ends up with the same pair.
    """
    keys = await get_vapid_keys(session)
    if keys:
        return keys
    
    candidate = generate_vapid_keys()
    if await notification_crud.insert_setting_if_absent(session, VAPID_KEYS, candidate.to_json()):
        logger.info("Generated new VAPID keypair")
        return candidate
    
    keys = await get_vapid_keys(session)
    if keys is None:
        raise RuntimeError("VAPID keys vanished after a conflicting insert")
    return keys
