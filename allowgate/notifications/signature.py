"""
JSON Farcaster Signature (JFS) verification for inbound events.

Envelope: {"header": b64url, "payload": b64url, "signature": b64url}
Header JSON: {"fid": int, "type": "app_key", "key": "0x<ed25519 public key>"}
The Ed25519 signature covers the ASCII bytes "{header}.{payload}".

Authenticity is checked before the payload is interpreted: a bad signature
or an inactive app key is InvalidAppKey; a verified envelope with a bad
payload is InvalidEventData; an unreachable key registry is VerifyAppKeyError.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import VerifyKey

from allowgate.allowgate_logging import get_logger
from allowgate.core.exceptions import InvalidAppKey, InvalidEventData, VerifyAppKeyError
from allowgate.providers import SocialGraphClient

logger = get_logger(__name__)

AppKeyCheck = Callable[[int, str], Awaitable[bool]]


@dataclass(frozen=True)
class SignedPayload:
    fid: int
    app_key: str
    payload: Any


def b64url_decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _decode_json(value: str, what: str) -> Any:
    try:
        return json.loads(b64url_decode(value))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidEventData(f"Invalid {what} encoding") from e


def verify_envelope(body: Any) -> SignedPayload:
    """Check the Ed25519 signature over header.payload and decode both parts."""
    if not isinstance(body, dict):
        raise InvalidEventData("Envelope must be a JSON object")
    header_b64, payload_b64, signature_b64 = (body.get(k) for k in ("header", "payload", "signature"))
    if not all(isinstance(v, str) and v for v in (header_b64, payload_b64, signature_b64)):
        raise InvalidEventData("Envelope requires header, payload and signature")

    header = _decode_json(header_b64, "header")
    if not isinstance(header, dict) or header.get("type") != "app_key":
        raise InvalidEventData("Header must declare an app_key")
    fid, key = header.get("fid"), header.get("key")
    if isinstance(fid, bool) or not isinstance(fid, int) or fid <= 0 or not isinstance(key, str):
        raise InvalidEventData("Header requires fid and key")

    try:
        key_bytes = bytes.fromhex(key[2:] if key.startswith("0x") else key)
        signature = b64url_decode(signature_b64)
    except (binascii.Error, ValueError) as e:
        raise InvalidEventData("Invalid key or signature encoding") from e

    try:
        VerifyKey(key_bytes).verify(f"{header_b64}.{payload_b64}".encode("ascii"), signature)
    except BadSignatureError as e:
        logger.warning("webhook_bad_signature", fid=fid)
        raise InvalidAppKey("Signature does not verify") from e
    except (CryptoError, ValueError, TypeError) as e:
        raise InvalidEventData("Malformed key or signature") from e

    return SignedPayload(fid=fid, app_key=key.lower(), payload=_decode_json(payload_b64, "payload"))


def neynar_app_key_check(client: SocialGraphClient) -> AppKeyCheck:
    """Adapt the social-graph client into an app-key check that raises on lookup failure."""

    async def check(fid: int, app_key: str) -> bool:
        resp = await client.is_active_app_key(fid, app_key)
        if resp.error:
            raise VerifyAppKeyError(resp.error)
        return bool(resp.value)

    return check


async def verify_signed_event(body: Any, is_active_app_key: AppKeyCheck) -> SignedPayload:
    signed = verify_envelope(body)
    if not await is_active_app_key(signed.fid, signed.app_key):
        logger.warning("webhook_inactive_app_key", fid=signed.fid)
        raise InvalidAppKey("App key is not active for this fid")
    return signed
