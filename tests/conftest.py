"""
Pytest fixtures for Allowgate tests. Uses a temporary SQLite DB for the
durable stores and in-memory fake providers for eligibility.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest
from nacl.signing import SigningKey

from allowgate.notifications.signature import b64url_encode
from allowgate.providers import PlatformUser, ProviderResponse, Providers, ShareReceipt

MEMBER = "0x1111111111111111111111111111111111111111"
CANDIDATE = "0x2222222222222222222222222222222222222222"
OTHER = "0x3333333333333333333333333333333333333333"

USER_FID = 4242
TARGET_FID = 1419696


@pytest.fixture
def allowgate_db(tmp_path, monkeypatch):
    """
    Point the stores at a temporary SQLite DB and create tables.
    Resets settings and engine caches so each test gets a fresh DB.
    """
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("ALLOWGATE_DB_URL", raising=False)
    monkeypatch.setenv("ALLOWGATE_DB_PATH", str(tmp_path / "allowgate.db"))

    from allowgate.config import get_settings, reset_settings_cache
    from allowgate.database import init_db, reset_engine_for_test

    reset_settings_cache()
    reset_engine_for_test()
    init_db()
    yield get_settings()
    reset_engine_for_test()
    reset_settings_cache()


@pytest.fixture
def settings(allowgate_db):
    """Settings over the temp DB with a short aggregation timeout."""
    from dataclasses import replace

    return replace(allowgate_db, aggregation_timeout_sec=1.0, farcaster_target_fid=TARGET_FID)


@pytest.fixture
def store(allowgate_db):
    from allowgate.allowlist import MerkleAllowlistStore

    return MerkleAllowlistStore()


# -----------------------------------------------------------------------------
# Fake providers
# -----------------------------------------------------------------------------

class _Fake:
    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[tuple[Any, ...]] = []

    async def _pause(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)


class FakeCredibility(_Fake):
    provider_id = "ethos"

    def __init__(self, response: ProviderResponse | None = None, delay: float = 0.0) -> None:
        super().__init__(delay)
        self.response = response or ProviderResponse.absent()

    async def query(self, address: str) -> ProviderResponse:
        self.calls.append(("query", address))
        await self._pause()
        return self.response


class FakeQuality(_Fake):
    provider_id = "quotient"

    def __init__(
        self,
        response: ProviderResponse | None = None,
        mutuals: ProviderResponse | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(delay)
        self.response = response or ProviderResponse.absent()
        self.mutuals_response = mutuals or ProviderResponse.ok([])

    async def query(self, fid: int) -> ProviderResponse:
        self.calls.append(("query", fid))
        await self._pause()
        return self.response

    async def mutuals(self, fid: int) -> ProviderResponse:
        self.calls.append(("mutuals", fid))
        return self.mutuals_response


class FakeSocialGraph(_Fake):
    provider_id = "neynar"

    def __init__(
        self,
        user: ProviderResponse | None = None,
        following: ProviderResponse | None = None,
        casts: dict[str, ProviderResponse] | None = None,
        usernames: ProviderResponse | None = None,
        app_key_active: ProviderResponse | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(delay)
        self.user = user or ProviderResponse.absent()
        self.following = following or ProviderResponse.ok(False)
        self.casts = casts or {}
        self.usernames_response = usernames or ProviderResponse.ok({})
        self.app_key_active = app_key_active or ProviderResponse.ok(True)

    async def query(self, subject: Any) -> ProviderResponse:
        self.calls.append(("query", subject))
        await self._pause()
        return self.user

    async def is_following(self, viewer_fid: int, target_fid: int) -> ProviderResponse:
        self.calls.append(("is_following", viewer_fid, target_fid))
        await self._pause()
        return self.following

    async def fetch_cast(self, cast_hash: str) -> ProviderResponse:
        self.calls.append(("fetch_cast", cast_hash))
        return self.casts.get(cast_hash, ProviderResponse.absent())

    async def usernames(self, fids: list[int]) -> ProviderResponse:
        self.calls.append(("usernames", tuple(fids)))
        return self.usernames_response

    async def is_active_app_key(self, fid: int, app_key: str) -> ProviderResponse:
        self.calls.append(("is_active_app_key", fid, app_key))
        return self.app_key_active


def platform_user(fid: int = USER_FID, score: float | None = 0.9, username: str = "alice") -> PlatformUser:
    return PlatformUser(fid=fid, username=username, display_name=username.title(), score=score)


def share_receipt(cast_hash: str = "0xcast", author_fid: int = USER_FID) -> ShareReceipt:
    return ShareReceipt(hash=cast_hash, author_fid=author_fid, text="joined")


@pytest.fixture
def fake_providers() -> Providers:
    """Providers where the wallet is linked, scores pass, and follows are confirmed."""
    return Providers(
        credibility=FakeCredibility(ProviderResponse.ok(1500.0)),
        social_graph=FakeSocialGraph(
            user=ProviderResponse.ok(platform_user()),
            following=ProviderResponse.ok(True),
            casts={"0xcast": ProviderResponse.ok(share_receipt())},
        ),
        quality=FakeQuality(ProviderResponse.ok(0.8)),
    )


# -----------------------------------------------------------------------------
# Signed webhook envelopes
# -----------------------------------------------------------------------------

SIGNING_KEY = SigningKey(b"\x01" * 32)
APP_KEY = "0x" + bytes(SIGNING_KEY.verify_key).hex()


def sign(payload: Any, fid: int = USER_FID, key: SigningKey = SIGNING_KEY, app_key: str | None = None) -> dict:
    """JFS envelope over payload (JSON-encoded unless already bytes), signed by key."""
    header = b64url_encode(
        json.dumps({"fid": fid, "type": "app_key", "key": app_key or "0x" + bytes(key.verify_key).hex()}).encode()
    )
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    body = b64url_encode(raw)
    signature = b64url_encode(key.sign(f"{header}.{body}".encode()).signature)
    return {"header": header, "payload": body, "signature": signature}
